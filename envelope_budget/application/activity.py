"""
Activity feed: recent audit-log entries of a profile.
"""
from sqlalchemy.orm import Session

from envelope_budget.application.permissions import ensure_user_role
from envelope_budget.domain.roles import ADMIN_OR_OWNER
from envelope_budget.infrastructure.db.models import EventLog
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository


def list_recent_activity(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    limit: int = 50,
    event_types: list[str] | None = None,
) -> list[EventLog]:
    ensure_user_role(db, user_id, budget_profile_id, ADMIN_OR_OWNER)
    limit = max(1, min(limit, 200))
    return EventLogRepository(db).list_recent(budget_profile_id, limit=limit, event_types=event_types)
