"""
Dashboard read service: monthly income/expense and per-envelope spending.
"""
from collections import defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from envelope_budget.application.permissions import ensure_user_role
from envelope_budget.domain.roles import ANY_MEMBER
from envelope_budget.domain.transaction import TransactionType
from envelope_budget.infrastructure.db.models import Envelope, TransactionModel

UNASSIGNED_LABEL = "Unassigned"


def _month_start(d: date) -> date:
    return d.replace(day=1)


def _shift_month(d: date, months: int) -> date:
    """First day of the month `months` away from d's month"""
    idx = d.year * 12 + (d.month - 1) + months
    return date(idx // 12, idx % 12 + 1, 1)


def _as_bound(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def get_income_expense_summary(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    today: date,
    months: int = 12,
) -> list[dict]:
    """
    Income and expense totals per calendar month, oldest first.

    All `months` months ending with today's month are present, empty ones
    with zero totals. Transfers are not counted.
    """
    ensure_user_role(db, user_id, budget_profile_id, ANY_MEMBER)

    first_month = _shift_month(_month_start(today), -(months - 1))
    end = _shift_month(_month_start(today), 1)

    rows = db.query(TransactionModel.date, TransactionModel.type, TransactionModel.amount).filter(
        TransactionModel.budget_profile_id == budget_profile_id,
        TransactionModel.date >= _as_bound(first_month),
        TransactionModel.date < _as_bound(end),
        TransactionModel.type != TransactionType.TRANSFER,
    ).all()

    totals = {
        _shift_month(first_month, i): {"income": Decimal("0"), "expense": Decimal("0")}
        for i in range(months)
    }
    for tx_date, tx_type, amount in rows:
        bucket = totals.get(_month_start(tx_date.date()))
        if bucket is None:
            continue
        key = "income" if tx_type == TransactionType.INCOME else "expense"
        bucket[key] += abs(Decimal(amount))

    return [
        {"name": month.strftime("%b %y"), "income": t["income"], "expense": t["expense"]}
        for month, t in sorted(totals.items())
    ]


def get_spending_by_envelope(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    today: date,
) -> list[dict]:
    """
    This month's EXPENSE total per envelope name, largest first.
    """
    ensure_user_role(db, user_id, budget_profile_id, ANY_MEMBER)

    start = _month_start(today)
    end = _shift_month(start, 1)

    rows = (
        db.query(Envelope.name, TransactionModel.amount)
        .select_from(TransactionModel)
        .outerjoin(Envelope, Envelope.id == TransactionModel.envelope_id)
        .filter(
            TransactionModel.budget_profile_id == budget_profile_id,
            TransactionModel.type == TransactionType.EXPENSE,
            TransactionModel.envelope_id.isnot(None),
            TransactionModel.date >= _as_bound(start),
            TransactionModel.date < _as_bound(end),
        )
        .all()
    )

    spending: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for name, amount in rows:
        spending[name or UNASSIGNED_LABEL] += abs(Decimal(amount))

    result = [
        {"name": name, "value": value.quantize(Decimal("0.01"))}
        for name, value in spending.items()
    ]
    result.sort(key=lambda item: item["value"], reverse=True)
    return result
