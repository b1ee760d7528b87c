"""
User profile use cases
"""
from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError
from envelope_budget.infrastructure.db.models import User, UserBudgetProfile


def get_current_membership(db: Session, user_id: int, budget_profile_id: int) -> UserBudgetProfile:
    """The caller's membership (and so their role) in the profile"""
    link = db.query(UserBudgetProfile).filter(
        UserBudgetProfile.user_id == user_id,
        UserBudgetProfile.budget_profile_id == budget_profile_id,
    ).first()
    if not link:
        raise NotFoundError("User profile link not found for the current budget profile")
    return link


def get_users(db: Session, user_ids: list[int]) -> list[dict]:
    """id/email pairs for the given users; unknown ids are skipped"""
    if not user_ids:
        return []
    users = db.query(User).filter(User.id.in_(user_ids)).order_by(User.id.asc()).all()
    return [{"id": u.id, "email": u.email} for u in users]


class UpdateUserProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, **changes) -> User:
        """
        Update display fields. Only keys present in changes are touched;
        an empty string clears the field.
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        if "display_name" in changes:
            user.display_name = (changes["display_name"] or "").strip() or None
        if "avatar_url" in changes:
            user.avatar_url = (changes["avatar_url"] or "").strip() or None

        self.db.commit()
        return user
