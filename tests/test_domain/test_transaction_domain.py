"""
Tests for Transaction domain helpers and audit payloads
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from envelope_budget.domain.transaction import (
    Transaction, TransactionType, spent_adjustment, crosses_transfer_boundary,
)


class TestSpentAdjustment:
    def test_expense_increases_spent(self):
        assert spent_adjustment(TransactionType.EXPENSE, Decimal("50")) == Decimal("50")

    def test_income_decreases_spent(self):
        assert spent_adjustment(TransactionType.INCOME, Decimal("20")) == Decimal("-20")

    def test_accepts_string_type(self):
        assert spent_adjustment("EXPENSE", Decimal("1.50")) == Decimal("1.50")

    def test_transfer_has_no_adjustment(self):
        with pytest.raises(ValueError):
            spent_adjustment(TransactionType.TRANSFER, Decimal("10"))


class TestTransferBoundary:
    def test_expense_to_income_is_allowed(self):
        assert not crosses_transfer_boundary(TransactionType.EXPENSE, TransactionType.INCOME)

    def test_into_transfer(self):
        assert crosses_transfer_boundary(TransactionType.EXPENSE, TransactionType.TRANSFER)

    def test_out_of_transfer(self):
        assert crosses_transfer_boundary("TRANSFER", "INCOME")

    def test_transfer_to_transfer(self):
        assert not crosses_transfer_boundary(TransactionType.TRANSFER, TransactionType.TRANSFER)


def test_created_payload_serializes_values():
    date = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    payload = Transaction.created(
        transaction_id=7,
        budget_profile_id=1,
        tx_type=TransactionType.EXPENSE,
        amount=Decimal("12.30"),
        description="Coffee",
        date=date,
        envelope_id=3,
    )

    assert payload["type"] == "EXPENSE"
    assert payload["amount"] == "12.30"
    assert payload["date"] == date.isoformat()
    assert payload["envelope_id"] == 3


def test_updated_payload_records_only_sent_fields():
    payload = Transaction.updated(
        7,
        {"type": "EXPENSE", "amount": "50.00", "envelope_id": 3},
        amount=Decimal("30"),
        type=TransactionType.INCOME,
    )

    assert payload["old_amount"] == "50.00"
    assert payload["old_envelope_id"] == 3
    assert payload["amount"] == "30"
    assert payload["type"] == "INCOME"
    assert "description" not in payload
    assert "envelope_id" not in payload


def test_updated_payload_keeps_explicit_unlink():
    payload = Transaction.updated(7, {"type": "EXPENSE", "amount": "5", "envelope_id": 3}, envelope_id=None)

    assert "envelope_id" in payload
    assert payload["envelope_id"] is None
