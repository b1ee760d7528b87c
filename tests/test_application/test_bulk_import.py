"""
Tests for bulk statement import
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from envelope_budget.application.errors import NotFoundError
from envelope_budget.application.transactions import BulkImportTransactionsUseCase, BulkImportRow
from envelope_budget.domain.transaction import TransactionType
from envelope_budget.infrastructure.db.models import EventLog, TransactionModel


ROW_DATE = datetime(2026, 4, 2, tzinfo=timezone.utc)


def _row(description, amount):
    return BulkImportRow(description=description, amount=Decimal(amount), date=ROW_DATE)


def test_sign_determines_type(db_session, users, profile):
    result = BulkImportTransactionsUseCase(db_session).execute(
        users.member.id, profile.id, [_row("Rent", "-1200"), _row("Salary", "3000.50")],
    )

    assert result.success_count == 2
    assert result.error_count == 0
    assert result.errors == []

    rows = {tx.description: tx for tx in db_session.query(TransactionModel).all()}
    assert rows["Rent"].type == TransactionType.EXPENSE
    assert rows["Rent"].amount == Decimal("1200")
    assert rows["Salary"].type == TransactionType.INCOME
    assert rows["Salary"].amount == Decimal("3000.50")


def test_imported_rows_are_unassigned_and_leave_spent_alone(db_session, users, profile, make_envelope):
    envelope = make_envelope(spent="42")

    BulkImportTransactionsUseCase(db_session).execute(
        users.member.id, profile.id, [_row("Coffee", "-3.20")],
    )

    tx = db_session.query(TransactionModel).one()
    assert tx.envelope_id is None
    db_session.refresh(envelope)
    assert envelope.spent == Decimal("42")


def test_bad_rows_are_reported_and_skipped(db_session, users, profile):
    result = BulkImportTransactionsUseCase(db_session).execute(
        users.member.id,
        profile.id,
        [_row("Zero", "0"), _row("Groceries", "-55"), _row("   ", "-1")],
    )

    assert result.success_count == 1
    assert result.error_count == 2
    assert result.errors[0] == "Failed to import row (Description: Zero): Transaction amount cannot be zero"
    assert "cannot be empty" in result.errors[1]
    assert db_session.query(TransactionModel).count() == 1


def test_empty_batch(db_session, users, profile):
    result = BulkImportTransactionsUseCase(db_session).execute(users.member.id, profile.id, [])

    assert result.success_count == 0
    assert result.error_count == 0


def test_audit_event_summarises_batch(db_session, users, profile):
    BulkImportTransactionsUseCase(db_session).execute(
        users.admin.id, profile.id, [_row("A", "-1"), _row("B", "0")],
    )

    event = db_session.query(EventLog).filter(EventLog.event_type == "transactions_imported").one()
    assert event.payload_json == {"success_count": 1, "error_count": 1}
    assert event.actor_user_id == users.admin.id


def test_outsider_cannot_import(db_session, users, profile):
    with pytest.raises(NotFoundError):
        BulkImportTransactionsUseCase(db_session).execute(users.outsider.id, profile.id, [_row("A", "-1")])

    assert db_session.query(TransactionModel).count() == 0
