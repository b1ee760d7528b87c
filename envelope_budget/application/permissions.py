"""
Access control: current-profile resolution, role threshold checks and
the membership policies every member-management use case goes through.
"""
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError, ForbiddenError
from envelope_budget.domain.roles import Role, role_level, min_required_level
from envelope_budget.infrastructure.db.models import UserBudgetProfile

logger = logging.getLogger(__name__)


def resolve_current_profile_id(db: Session, user_id: int) -> int:
    """
    Profile the caller acts within when none was chosen explicitly.

    Users are expected to belong to a single profile; with several, the
    oldest membership wins. Use cases never call this: the profile id is
    resolved once at the request boundary and passed down.

    Raises:
        NotFoundError: the user has no membership at all
    """
    link = (
        db.query(UserBudgetProfile)
        .filter(UserBudgetProfile.user_id == user_id)
        .order_by(UserBudgetProfile.id.asc())
        .first()
    )
    if not link:
        raise NotFoundError("User is not associated with any budget profile")
    return link.budget_profile_id


def ensure_user_role(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    allowed_roles: Iterable[Role],
) -> UserBudgetProfile:
    """
    Check that the user's role in the profile is at least the lowest of
    allowed_roles. Read-only.

    Returns:
        The caller's membership row

    Raises:
        NotFoundError: no membership (also when the profile doesn't exist)
        ForbiddenError: role below the threshold
        RuntimeError: allowed_roles is empty (misconfigured call site)
    """
    allowed_roles = list(allowed_roles)
    if not allowed_roles:
        logger.error("Empty role requirement for profile %s", budget_profile_id)
        raise RuntimeError("Invalid role configuration")

    link = db.query(UserBudgetProfile).filter(
        UserBudgetProfile.user_id == user_id,
        UserBudgetProfile.budget_profile_id == budget_profile_id,
    ).first()

    if not link:
        raise NotFoundError("Budget profile not found or user is not a member")

    if role_level(link.role) < min_required_level(allowed_roles):
        raise ForbiddenError("Insufficient permissions")

    return link


# ── Membership policies ──────────────────────────────────────────────────────

def ensure_not_owner_target(target: UserBudgetProfile, action: str) -> None:
    """The OWNER membership can't be changed or removed through generic paths."""
    if target.role == Role.OWNER:
        raise ForbiddenError(f"Cannot {action} the budget profile owner")


def ensure_not_self(
    actor_user_id: int,
    target_user_id: int,
    action: str,
    error: type[Exception] = ForbiddenError,
) -> None:
    if actor_user_id == target_user_id:
        raise error(f"Cannot {action} yourself")


def ensure_can_manage_member(actor: UserBudgetProfile, target: UserBudgetProfile, action: str) -> None:
    """Only the OWNER may act on an ADMIN."""
    if actor.role == Role.ADMIN and target.role == Role.ADMIN:
        raise ForbiddenError(f"Admins cannot {action} other admins")
