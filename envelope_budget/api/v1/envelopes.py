"""
Envelope API endpoints
"""
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.envelopes import (
    list_envelopes,
    CreateEnvelopeUseCase,
    UpdateEnvelopeUseCase,
    DeleteEnvelopeUseCase,
    RecalculateEnvelopeSpentUseCase,
)
from envelope_budget.infrastructure.db.models import User, Envelope
from envelope_budget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/envelopes", tags=["envelopes"])


# === Request/Response models ===

class CreateEnvelopeRequest(BaseModel):
    name: str
    category: str
    amount: str = "0"  # budgeted target
    color: str | None = None
    icon: str | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class UpdateEnvelopeRequest(BaseModel):
    name: str | None = None
    category: str | None = None
    amount: str | None = None
    color: str | None = None
    icon: str | None = None
    is_archived: bool | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_and_normalize_amount(v, max_decimal_places=2)


class EnvelopeResponse(BaseModel):
    id: int
    name: str
    category: str
    amount: str  # Decimal as string
    spent: str
    color: str | None
    icon: str | None
    is_archived: bool


class RecalculateResponse(BaseModel):
    corrected: dict[int, str]


def _to_response(e: Envelope) -> EnvelopeResponse:
    return EnvelopeResponse(
        id=e.id,
        name=e.name,
        category=e.category,
        amount=str(e.amount),
        spent=str(e.spent),
        color=e.color,
        icon=e.icon,
        is_archived=e.is_archived,
    )


# === Endpoints ===

@router.get("/", response_model=list[EnvelopeResponse])
def get_envelopes(
    include_archived: bool = False,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    envelopes = list_envelopes(db, user.id, budget_profile_id, include_archived=include_archived)
    return [_to_response(e) for e in envelopes]


@router.post("/", response_model=EnvelopeResponse)
def create_envelope(
    req: CreateEnvelopeRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    envelope = CreateEnvelopeUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        name=req.name,
        category=req.category,
        amount=Decimal(req.amount),
        color=req.color,
        icon=req.icon,
    )
    return _to_response(envelope)


@router.patch("/{envelope_id}", response_model=EnvelopeResponse)
def update_envelope(
    envelope_id: int,
    req: UpdateEnvelopeRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("amount") is not None:
        changes["amount"] = Decimal(changes["amount"])

    envelope = UpdateEnvelopeUseCase(db).execute(
        envelope_id=envelope_id,
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        **changes,
    )
    return _to_response(envelope)


@router.delete("/{envelope_id}")
def delete_envelope(
    envelope_id: int,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    DeleteEnvelopeUseCase(db).execute(
        envelope_id=envelope_id,
        user_id=user.id,
        budget_profile_id=budget_profile_id,
    )
    return {"success": True}


@router.post("/recalculate", response_model=RecalculateResponse)
def recalculate_spent(
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Rebuild `spent` of every envelope from its transactions (ADMIN+)"""
    corrected = RecalculateEnvelopeSpentUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
    )
    return RecalculateResponse(corrected={k: str(v) for k, v in corrected.items()})
