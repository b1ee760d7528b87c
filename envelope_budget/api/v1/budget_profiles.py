"""
Budget profile API endpoints: profiles, members, invitations

Routes under /current act on the profile resolved for the request
(see get_current_profile_id).
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.budget_profiles import (
    list_user_profiles,
    list_profile_members,
    CreateBudgetProfileUseCase,
    UpdateMemberRoleUseCase,
    RemoveMemberUseCase,
)
from envelope_budget.application.invitations import (
    list_pending_invitations,
    InviteUserUseCase,
    RevokeInvitationUseCase,
)
from envelope_budget.domain.invitation import InvitationStatus
from envelope_budget.domain.roles import Role
from envelope_budget.infrastructure.db.models import User, UserBudgetProfile, Invitation


router = APIRouter(prefix="/api/v1/budget-profiles", tags=["budget-profiles"])


# === Request/Response models ===

class CreateBudgetProfileRequest(BaseModel):
    name: str
    description: str | None = None
    currency: str | None = None  # defaults to DEFAULT_CURRENCY


class BudgetProfileResponse(BaseModel):
    id: int
    name: str
    description: str | None
    currency: str
    owner_id: int
    role: str  # caller's role in this profile


class MemberResponse(BaseModel):
    user_id: int
    email: str
    display_name: str | None
    role: str


class UpdateMemberRoleRequest(BaseModel):
    role: str  # ADMIN | MEMBER


class InviteRequest(BaseModel):
    email: str
    role: str  # ADMIN | MEMBER


class InvitationResponse(BaseModel):
    id: str
    email: str
    role: str
    status: str
    expires_at: datetime


class InviteResponse(BaseModel):
    """Either a direct membership (existing user) or a pending invitation"""
    member: MemberResponse | None = None
    invitation: InvitationResponse | None = None


def _profile_response(link: UserBudgetProfile) -> BudgetProfileResponse:
    profile = link.budget_profile
    return BudgetProfileResponse(
        id=profile.id,
        name=profile.name,
        description=profile.description,
        currency=profile.currency,
        owner_id=profile.owner_id,
        role=Role(link.role).value,
    )


def _member_response(link: UserBudgetProfile) -> MemberResponse:
    return MemberResponse(
        user_id=link.user_id,
        email=link.user.email,
        display_name=link.user.display_name,
        role=Role(link.role).value,
    )


def _invitation_response(inv: Invitation) -> InvitationResponse:
    return InvitationResponse(
        id=inv.id,
        email=inv.email,
        role=Role(inv.role).value,
        status=InvitationStatus(inv.status).value,
        expires_at=inv.expires_at,
    )


# === Profiles ===

@router.post("/", response_model=BudgetProfileResponse)
def create_budget_profile(
    req: CreateBudgetProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the caller's own profile; the caller becomes OWNER"""
    profile = CreateBudgetProfileUseCase(db).execute(
        user_id=user.id,
        name=req.name,
        description=req.description,
        currency=req.currency,
    )
    return _profile_response(profile.members[0])


@router.get("/", response_model=list[BudgetProfileResponse])
def get_my_budget_profiles(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Every profile the caller belongs to, with their role in it"""
    return [_profile_response(link) for link in list_user_profiles(db, user.id)]


# === Members ===

@router.get("/current/members", response_model=list[MemberResponse])
def get_members(
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    members = list_profile_members(db, user.id, budget_profile_id)
    return [_member_response(link) for link in members]


@router.patch("/current/members/{target_user_id}", response_model=MemberResponse)
def update_member_role(
    target_user_id: int,
    req: UpdateMemberRoleRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    link = UpdateMemberRoleUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        target_user_id=target_user_id,
        new_role=req.role,
    )
    return _member_response(link)


@router.delete("/current/members/{target_user_id}")
def remove_member(
    target_user_id: int,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    RemoveMemberUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        target_user_id=target_user_id,
    )
    return {"success": True}


# === Invitations ===

@router.post("/current/invitations", response_model=InviteResponse)
def invite_user(
    req: InviteRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    result = InviteUserUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        email=req.email,
        role=req.role,
    )
    if isinstance(result, UserBudgetProfile):
        return InviteResponse(member=_member_response(result))
    return InviteResponse(invitation=_invitation_response(result))


@router.get("/current/invitations", response_model=list[InvitationResponse])
def get_pending_invitations(
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    invitations = list_pending_invitations(db, user.id, budget_profile_id)
    return [_invitation_response(inv) for inv in invitations]


@router.delete("/current/invitations/{invitation_id}")
def revoke_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    RevokeInvitationUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        invitation_id=invitation_id,
    )
    return {"success": True}
