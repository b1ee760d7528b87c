"""
Transaction domain - types, signed envelope adjustment, audit payloads
"""
from datetime import datetime
from decimal import Decimal
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"  # reserved: no envelope balance logic exists for it


def spent_adjustment(tx_type: TransactionType | str, amount: Decimal) -> Decimal:
    """
    Contribution of a transaction to its envelope's `spent`

    EXPENSE adds the amount, INCOME subtracts it. The stored amount is
    always a magnitude; the sign comes from the type.

    Raises:
        ValueError: for TRANSFER
    """
    tx_type = TransactionType(tx_type)
    if tx_type == TransactionType.EXPENSE:
        return Decimal(amount)
    if tx_type == TransactionType.INCOME:
        return -Decimal(amount)
    raise ValueError("TRANSFER transactions have no envelope adjustment")


def crosses_transfer_boundary(old_type: TransactionType | str, new_type: TransactionType | str) -> bool:
    """True when a type change moves into or out of TRANSFER."""
    old_is_transfer = TransactionType(old_type) == TransactionType.TRANSFER
    new_is_transfer = TransactionType(new_type) == TransactionType.TRANSFER
    return old_is_transfer != new_is_transfer


@dataclass
class Transaction:
    """
    Transaction domain entity

    Persisted as a plain row (TransactionModel); this class only builds
    the audit-log payloads describing each mutation.
    """
    id: int
    budget_profile_id: int
    type: TransactionType
    amount: Decimal
    description: str
    date: datetime
    envelope_id: Optional[int]

    @staticmethod
    def created(
        transaction_id: int,
        budget_profile_id: int,
        tx_type: TransactionType,
        amount: Decimal,
        description: str,
        date: datetime,
        envelope_id: Optional[int],
    ) -> Dict[str, Any]:
        """Payload for transaction_created"""
        return {
            "transaction_id": transaction_id,
            "budget_profile_id": budget_profile_id,
            "type": TransactionType(tx_type).value,
            "amount": str(amount),
            "description": description,
            "date": date.isoformat(),
            "envelope_id": envelope_id,
        }

    @staticmethod
    def updated(
        transaction_id: int,
        old_snapshot: Dict[str, Any],
        **changes: Any,
    ) -> Dict[str, Any]:
        """
        Payload for transaction_updated

        old_snapshot holds the values the balance reversal was computed
        from; only the fields that were actually sent are recorded as changes.
        """
        payload: Dict[str, Any] = {
            "transaction_id": transaction_id,
            "old_type": old_snapshot["type"],
            "old_amount": old_snapshot["amount"],
            "old_envelope_id": old_snapshot.get("envelope_id"),
        }
        for key in ("description", "amount", "date", "type", "envelope_id"):
            if key in changes:
                val = changes[key]
                if isinstance(val, datetime):
                    payload[key] = val.isoformat()
                elif isinstance(val, Decimal):
                    payload[key] = str(val)
                elif isinstance(val, Enum):
                    payload[key] = val.value
                else:
                    payload[key] = val
        return payload

    @staticmethod
    def deleted(
        transaction_id: int,
        tx_type: TransactionType,
        amount: Decimal,
        envelope_id: Optional[int],
    ) -> Dict[str, Any]:
        """Payload for transaction_deleted"""
        return {
            "transaction_id": transaction_id,
            "type": TransactionType(tx_type).value,
            "amount": str(amount),
            "envelope_id": envelope_id,
        }

    @staticmethod
    def imported(success_count: int, error_count: int) -> Dict[str, Any]:
        """Payload for transactions_imported"""
        return {
            "success_count": success_count,
            "error_count": error_count,
        }
