"""
Pytest fixtures for testing
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from envelope_budget.domain.roles import Role
from envelope_budget.infrastructure.db.session import Base
from envelope_budget.infrastructure.db.models import User, BudgetProfile, UserBudgetProfile, Envelope


def create_schema(engine) -> None:
    """Create all tables, with JSONB→JSON mapping for SQLite."""
    # SQLite doesn't support JSONB: remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)


@pytest.fixture
def db_engine():
    """
    Create in-memory SQLite engine for tests

    One shared connection, so API tests (TestClient runs the app in
    another thread) see the same database as the fixtures.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def users(db_session):
    """owner / admin / member / outsider (the last one belongs to no profile)"""
    created = {}
    for name in ("owner", "admin", "member", "outsider"):
        user = User(email=f"{name}@example.com", display_name=name.title())
        db_session.add(user)
        created[name] = user
    db_session.commit()
    return SimpleNamespace(**created)


@pytest.fixture
def profile(db_session, users) -> BudgetProfile:
    """Shared profile owned by users.owner with an ADMIN and a MEMBER"""
    profile = BudgetProfile(name="Family budget", currency="USD", owner_id=users.owner.id)
    db_session.add(profile)
    db_session.flush()

    for user, role in ((users.owner, Role.OWNER), (users.admin, Role.ADMIN), (users.member, Role.MEMBER)):
        db_session.add(UserBudgetProfile(user_id=user.id, budget_profile_id=profile.id, role=role))
    db_session.commit()
    return profile


@pytest.fixture
def make_envelope(db_session, profile):
    """Factory: envelope in the shared profile"""
    def _make(name: str = "Groceries", amount: str = "500", spent: str = "0", budget_profile_id: int = None) -> Envelope:
        envelope = Envelope(
            budget_profile_id=budget_profile_id or profile.id,
            name=name,
            category="Living",
            amount=Decimal(amount),
            spent=Decimal(spent),
            is_archived=False,
        )
        db_session.add(envelope)
        db_session.commit()
        return envelope
    return _make
