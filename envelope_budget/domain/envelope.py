"""
Envelope domain entity - audit payloads for envelope operations
"""
from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass
class Envelope:
    """
    Envelope (budget category)

    `spent` is a maintained aggregate: the signed sum of the linked
    non-transfer transactions. It is never edited directly.
    """
    id: int
    budget_profile_id: int
    name: str
    category: str
    amount: Decimal
    spent: Decimal
    color: Optional[str]
    icon: Optional[str]
    is_archived: bool

    @staticmethod
    def created(envelope_id: int, name: str, category: str, amount: Decimal) -> Dict[str, Any]:
        return {
            "envelope_id": envelope_id,
            "name": name,
            "category": category,
            "amount": str(amount),
        }

    @staticmethod
    def updated(envelope_id: int, **changes: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"envelope_id": envelope_id}
        for key, val in changes.items():
            payload[key] = str(val) if isinstance(val, Decimal) else val
        return payload

    @staticmethod
    def deleted(envelope_id: int, name: str) -> Dict[str, Any]:
        return {"envelope_id": envelope_id, "name": name}

    @staticmethod
    def recalculated(corrections: Dict[int, Dict[str, str]]) -> Dict[str, Any]:
        """corrections: envelope_id -> {"old": ..., "new": ...} for envelopes that drifted"""
        return {"corrections": {str(k): v for k, v in corrections.items()}}
