"""
Invitation acceptance endpoint, called by the signup flow
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user
from envelope_budget.application.invitations import AcceptInvitationUseCase
from envelope_budget.domain.roles import Role
from envelope_budget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/invitations", tags=["invitations"])


class AcceptInvitationRequest(BaseModel):
    token: str


class AcceptInvitationResponse(BaseModel):
    budget_profile_id: int
    role: str


@router.post("/accept", response_model=AcceptInvitationResponse)
def accept_invitation(
    req: AcceptInvitationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    link = AcceptInvitationUseCase(db).execute(user_id=user.id, token=req.token)
    return AcceptInvitationResponse(
        budget_profile_id=link.budget_profile_id,
        role=Role(link.role).value,
    )
