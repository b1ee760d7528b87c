"""
Invitation domain - status vocabulary, token generation, expiry rules
"""
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Any


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
    DECLINED = "DECLINED"


def generate_token() -> str:
    """64 hex characters"""
    return secrets.token_hex(32)


def compute_expiry(now: datetime, ttl_days: int) -> datetime:
    return now + timedelta(days=ttl_days)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps coming back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(expires_at: datetime, now: datetime) -> bool:
    return as_utc(now) > as_utc(expires_at)


def emails_match(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def build_signup_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/signup?inviteToken={token}"


class Invitation:
    """Audit payloads for the invitation lifecycle"""

    @staticmethod
    def created(invitation_id: str, email: str, role: str, expires_at: datetime) -> Dict[str, Any]:
        return {
            "invitation_id": invitation_id,
            "email": email,
            "role": role,
            "expires_at": expires_at.isoformat(),
        }

    @staticmethod
    def revoked(invitation_id: str, email: str) -> Dict[str, Any]:
        return {"invitation_id": invitation_id, "email": email}

    @staticmethod
    def accepted(invitation_id: str, user_id: int, role: str, membership_created: bool) -> Dict[str, Any]:
        return {
            "invitation_id": invitation_id,
            "user_id": user_id,
            "role": role,
            "membership_created": membership_created,
        }
