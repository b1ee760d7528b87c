"""
Transaction API endpoints
"""
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.transactions import (
    list_transactions,
    CreateTransactionUseCase,
    UpdateTransactionUseCase,
    DeleteTransactionUseCase,
    BulkImportTransactionsUseCase,
    BulkImportRow,
)
from envelope_budget.domain.transaction import TransactionType
from envelope_budget.infrastructure.db.models import User
from envelope_budget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request/Response models ===

class CreateTransactionRequest(BaseModel):
    description: str
    amount: str  # positive magnitude, direction comes from type
    type: TransactionType
    date: datetime | None = None  # defaults to now
    envelope_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class UpdateTransactionRequest(BaseModel):
    """Only fields sent by the client are changed; `envelope_id: null` unlinks"""
    description: str | None = None
    amount: str | None = None
    type: TransactionType | None = None
    date: datetime | None = None
    envelope_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_and_normalize_amount(v, max_decimal_places=2)


class ImportRowRequest(BaseModel):
    description: str
    amount: str  # negative = expense, positive = income
    date: datetime

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2, signed=True)


class BulkImportRequest(BaseModel):
    transactions: list[ImportRowRequest] = Field(default_factory=list)


class TransactionResponse(BaseModel):
    id: int
    budget_profile_id: int
    envelope_id: int | None
    description: str
    amount: str  # Decimal as string
    type: str
    date: datetime


class BulkImportResponse(BaseModel):
    success_count: int
    error_count: int
    errors: list[str]


def _to_response(tx) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        budget_profile_id=tx.budget_profile_id,
        envelope_id=tx.envelope_id,
        description=tx.description,
        amount=str(tx.amount),
        type=TransactionType(tx.type).value,
        date=tx.date,
    )


# === Endpoints ===

@router.get("/", response_model=list[TransactionResponse])
def get_transactions(
    envelope_id: int | None = None,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Transactions of the current profile, newest first"""
    transactions = list_transactions(db, user.id, budget_profile_id, envelope_id=envelope_id)
    return [_to_response(tx) for tx in transactions]


@router.post("/", response_model=TransactionResponse)
def create_transaction(
    req: CreateTransactionRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    tx = CreateTransactionUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        description=req.description,
        amount=Decimal(req.amount),
        date=req.date or datetime.now(timezone.utc),
        tx_type=req.type,
        envelope_id=req.envelope_id,
    )
    return _to_response(tx)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    req: UpdateTransactionRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("amount") is not None:
        changes["amount"] = Decimal(changes["amount"])

    tx = UpdateTransactionUseCase(db).execute(
        transaction_id=transaction_id,
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        **changes,
    )
    return _to_response(tx)


@router.delete("/{transaction_id}", response_model=TransactionResponse)
def delete_transaction(
    transaction_id: int,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Delete a transaction; the removed record is returned"""
    deleted = DeleteTransactionUseCase(db).execute(
        transaction_id=transaction_id,
        user_id=user.id,
        budget_profile_id=budget_profile_id,
    )
    return _to_response(deleted)


@router.post("/bulk-import", response_model=BulkImportResponse)
def bulk_import_transactions(
    req: BulkImportRequest,
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Import parsed statement rows; bad rows are reported, not fatal"""
    rows = [
        BulkImportRow(description=r.description, amount=Decimal(r.amount), date=r.date)
        for r in req.transactions
    ]
    result = BulkImportTransactionsUseCase(db).execute(
        user_id=user.id,
        budget_profile_id=budget_profile_id,
        rows=rows,
    )
    return BulkImportResponse(
        success_count=result.success_count,
        error_count=result.error_count,
        errors=result.errors,
    )
