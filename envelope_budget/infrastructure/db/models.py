"""
SQLAlchemy ORM models
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Integer, Text, TIMESTAMP, func, Boolean, Numeric,
    ForeignKey, UniqueConstraint, Index, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from envelope_budget.domain.invitation import InvitationStatus
from envelope_budget.domain.roles import Role
from envelope_budget.domain.transaction import TransactionType
from envelope_budget.infrastructure.db.session import Base


def _str_enum(enum_cls, length: int = 20) -> SAEnum:
    # Stored as VARCHAR so new members don't need a DDL type change
    return SAEnum(enum_cls, native_enum=False, length=length, validate_strings=True)


class User(Base):
    """
    User identity. Created by the external auth/signup flow.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )


class BudgetProfile(Base):
    """
    Shared budget profile. One per owning user; owns its envelopes,
    transactions, memberships and invitations (cascade delete).
    """
    __tablename__ = "budget_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    members: Mapped[list["UserBudgetProfile"]] = relationship(
        back_populates="budget_profile", cascade="all, delete-orphan", passive_deletes=True
    )
    envelopes: Mapped[list["Envelope"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )
    transactions: Mapped[list["TransactionModel"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )


class UserBudgetProfile(Base):
    """
    Membership: (user, profile, role). Exactly one row per pair.
    """
    __tablename__ = "user_budget_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    budget_profile_id: Mapped[int] = mapped_column(
        ForeignKey("budget_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[Role] = mapped_column(_str_enum(Role), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    budget_profile: Mapped[BudgetProfile] = relationship(back_populates="members")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "budget_profile_id", name="uq_user_budget_profile"),
    )


class Envelope(Base):
    """
    Budget category. `spent` is maintained by the transaction use cases.
    """
    __tablename__ = "envelopes"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_profile_id: Mapped[int] = mapped_column(
        ForeignKey("budget_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    spent: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class TransactionModel(Base):
    """
    Transaction row. envelope_id is nullable ("unassigned"); an envelope
    cannot be deleted while transactions still reference it.
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_profile_id: Mapped[int] = mapped_column(
        ForeignKey("budget_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    envelope_id: Mapped[int | None] = mapped_column(
        ForeignKey("envelopes.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, index=True)
    type: Mapped[TransactionType] = mapped_column(_str_enum(TransactionType), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    envelope: Mapped[Envelope | None] = relationship()

    __table_args__ = (
        Index("ix_transactions_profile_date", "budget_profile_id", "date"),
    )


class Invitation(Base):
    """
    Invitation of an email address to a profile with a proposed role.
    """
    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    budget_profile_id: Mapped[int] = mapped_column(
        ForeignKey("budget_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[Role] = mapped_column(_str_enum(Role), nullable=False)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[InvitationStatus] = mapped_column(
        _str_enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    invited_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    accepted_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class EventLog(Base):
    """
    Audit log: one immutable row per successful mutation, written in the
    same commit as the mutation itself.
    """
    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_profile_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    actor_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    payload_json: Mapped[dict] = mapped_column(JSONB, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
