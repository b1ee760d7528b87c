"""
User API endpoints
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.users import get_current_membership, get_users, UpdateUserProfileUseCase
from envelope_budget.domain.roles import Role
from envelope_budget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/users", tags=["users"])


class MembershipResponse(BaseModel):
    user_id: int
    budget_profile_id: int
    role: str


class UpdateMeRequest(BaseModel):
    display_name: str | None = None
    avatar_url: str | None = None


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: str | None = None
    avatar_url: str | None = None


class UserBriefResponse(BaseModel):
    id: int
    email: str


@router.get("/me/membership", response_model=MembershipResponse)
def get_my_membership(
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Caller's role in the current profile"""
    link = get_current_membership(db, user.id, budget_profile_id)
    return MembershipResponse(
        user_id=link.user_id,
        budget_profile_id=link.budget_profile_id,
        role=Role(link.role).value,
    )


@router.patch("/me", response_model=UserResponse)
def update_me(
    req: UpdateMeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = UpdateUserProfileUseCase(db).execute(user.id, **req.model_dump(exclude_unset=True))
    return UserResponse(
        id=updated.id,
        email=updated.email,
        display_name=updated.display_name,
        avatar_url=updated.avatar_url,
    )


@router.get("/", response_model=list[UserBriefResponse])
def list_users(
    ids: list[int] = Query(default=[]),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """id/email lookup used to label transaction and member lists"""
    return [UserBriefResponse(**u) for u in get_users(db, ids)]
