"""
Budget profile and membership use cases
"""
import logging

from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError, UserError
from envelope_budget.application.permissions import (
    ensure_user_role, ensure_not_owner_target, ensure_not_self, ensure_can_manage_member,
)
from envelope_budget.config import get_settings
from envelope_budget.domain.budget_profile import BudgetProfile as BudgetProfileEntity, is_valid_currency
from envelope_budget.domain.roles import Role, ANY_MEMBER, ADMIN_OR_OWNER, ASSIGNABLE_ROLES
from envelope_budget.infrastructure.db.models import BudgetProfile, UserBudgetProfile
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)


class ProfileValidationError(UserError):
    pass


class MembershipValidationError(UserError):
    pass


def _coerce_assignable_role(value) -> Role:
    try:
        role = Role(value)
    except ValueError:
        role = None
    if role not in ASSIGNABLE_ROLES:
        raise MembershipValidationError("Invalid role. Only ADMIN or MEMBER can be assigned")
    return role


def _get_member_link(db: Session, user_id: int, budget_profile_id: int) -> UserBudgetProfile:
    link = db.query(UserBudgetProfile).filter(
        UserBudgetProfile.user_id == user_id,
        UserBudgetProfile.budget_profile_id == budget_profile_id,
    ).first()
    if not link:
        raise NotFoundError("Target user is not a member of this budget profile")
    return link


def list_user_profiles(db: Session, user_id: int) -> list[UserBudgetProfile]:
    """All memberships of the user"""
    return db.query(UserBudgetProfile).filter(
        UserBudgetProfile.user_id == user_id
    ).order_by(UserBudgetProfile.id.asc()).all()


def list_profile_members(db: Session, user_id: int, budget_profile_id: int) -> list[UserBudgetProfile]:
    ensure_user_role(db, user_id, budget_profile_id, ANY_MEMBER)
    return db.query(UserBudgetProfile).filter(
        UserBudgetProfile.budget_profile_id == budget_profile_id
    ).order_by(UserBudgetProfile.id.asc()).all()


class CreateBudgetProfileUseCase:
    """
    Use case: create the caller's own budget profile

    The profile and the OWNER membership are committed together.
    A user owns at most one profile.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        name: str,
        description: str | None = None,
        currency: str | None = None,
    ) -> BudgetProfile:
        name = (name or "").strip()
        if not name:
            raise ProfileValidationError("Profile name cannot be empty")

        currency = currency or get_settings().DEFAULT_CURRENCY
        if not is_valid_currency(currency):
            raise ProfileValidationError(
                f"Invalid currency code: {currency}. Use 3 upper-case letters (e.g. USD, EUR)"
            )

        existing = self.db.query(BudgetProfile).filter(BudgetProfile.owner_id == user_id).first()
        if existing:
            raise ProfileValidationError("User can only own one budget profile")

        profile = BudgetProfile(
            name=name,
            description=description,
            currency=currency,
            owner_id=user_id,
        )
        profile.members.append(UserBudgetProfile(user_id=user_id, role=Role.OWNER))
        self.db.add(profile)
        self.db.flush()

        self.event_repo.append_event(
            budget_profile_id=profile.id,
            event_type="budget_profile_created",
            payload=BudgetProfileEntity.created(profile.id, user_id, name, currency),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info("User %s created budget profile %s", user_id, profile.id)
        return profile


class UpdateMemberRoleUseCase:
    """
    Use case: change a member's role (ADMIN+)

    The owner's role is fixed, nobody changes their own role here, and
    only the owner may change an admin's role.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_profile_id: int,
        target_user_id: int,
        new_role: Role | str,
    ) -> UserBudgetProfile:
        actor = ensure_user_role(self.db, user_id, budget_profile_id, ADMIN_OR_OWNER)
        new_role = _coerce_assignable_role(new_role)

        target = _get_member_link(self.db, target_user_id, budget_profile_id)

        ensure_not_owner_target(target, "change the role of")
        ensure_not_self(user_id, target_user_id, "change the role of")
        ensure_can_manage_member(actor, target, "change the role of")

        old_role = Role(target.role)
        target.role = new_role

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="member_role_updated",
            payload=BudgetProfileEntity.member_role_updated(target_user_id, old_role.value, new_role.value),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info(
            "Updated role for user %s in profile %s to %s",
            target_user_id, budget_profile_id, new_role.value,
        )
        return target


class RemoveMemberUseCase:
    """Use case: remove a member from the profile (ADMIN+)"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, user_id: int, budget_profile_id: int, target_user_id: int) -> None:
        ensure_not_self(user_id, target_user_id, "remove", error=MembershipValidationError)

        actor = ensure_user_role(self.db, user_id, budget_profile_id, ADMIN_OR_OWNER)
        target = _get_member_link(self.db, target_user_id, budget_profile_id)

        ensure_not_owner_target(target, "remove")
        ensure_can_manage_member(actor, target, "remove")

        role = Role(target.role).value
        self.db.delete(target)

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="member_removed",
            payload=BudgetProfileEntity.member_removed(target_user_id, role),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info("Removed user %s from profile %s", target_user_id, budget_profile_id)
