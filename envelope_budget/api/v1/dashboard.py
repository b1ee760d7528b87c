"""
Dashboard API endpoints (chart data)
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.dashboard import get_income_expense_summary, get_spending_by_envelope
from envelope_budget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


class MonthSummaryResponse(BaseModel):
    name: str  # "Jan 26"
    income: str
    expense: str


class EnvelopeSpendingResponse(BaseModel):
    name: str
    value: str


@router.get("/income-expense", response_model=list[MonthSummaryResponse])
def income_expense(
    months: int = Query(default=12, ge=1, le=36),
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    summary = get_income_expense_summary(db, user.id, budget_profile_id, date.today(), months=months)
    return [
        MonthSummaryResponse(name=m["name"], income=str(m["income"]), expense=str(m["expense"]))
        for m in summary
    ]


@router.get("/spending-by-envelope", response_model=list[EnvelopeSpendingResponse])
def spending_by_envelope(
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    spending = get_spending_by_envelope(db, user.id, budget_profile_id, date.today())
    return [EnvelopeSpendingResponse(name=s["name"], value=str(s["value"])) for s in spending]
