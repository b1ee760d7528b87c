"""
Budget profile domain - shared profile and membership audit payloads
"""
import re
from dataclasses import dataclass
from typing import Dict, Any, Optional

_CURRENCY_RE = re.compile(r"[A-Z]{3}")


def is_valid_currency(code: str) -> bool:
    """Strictly three upper-case latin letters (USD, EUR, RUB)"""
    return bool(_CURRENCY_RE.fullmatch(code))


@dataclass
class BudgetProfile:
    """
    Shared budget profile, owned by exactly one user and shared with
    others through memberships.
    """
    id: int
    owner_id: int
    name: str
    description: Optional[str]
    currency: str

    @staticmethod
    def created(profile_id: int, owner_id: int, name: str, currency: str) -> Dict[str, Any]:
        return {
            "budget_profile_id": profile_id,
            "owner_id": owner_id,
            "name": name,
            "currency": currency,
        }

    @staticmethod
    def member_added(user_id: int, role: str) -> Dict[str, Any]:
        return {"user_id": user_id, "role": role}

    @staticmethod
    def member_role_updated(user_id: int, old_role: str, new_role: str) -> Dict[str, Any]:
        return {"user_id": user_id, "old_role": old_role, "new_role": new_role}

    @staticmethod
    def member_removed(user_id: int, role: str) -> Dict[str, Any]:
        return {"user_id": user_id, "role": role}
