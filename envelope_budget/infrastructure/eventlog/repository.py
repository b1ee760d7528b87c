"""
Event Log Repository - audit trail of mutations

Every use case appends its event before committing, so the audit row and
the change it describes are persisted (or rolled back) together.
"""
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from envelope_budget.infrastructure.db.models import EventLog


class EventLogRepository:
    """
    Append-only access to the audit log
    """

    def __init__(self, db: Session):
        self.db = db

    def append_event(
        self,
        budget_profile_id: Optional[int],
        event_type: str,
        payload: Dict[str, Any],
        occurred_at: Optional[datetime] = None,
        actor_user_id: Optional[int] = None,
    ) -> int:
        """
        Append an event (flushed, not committed)

        Args:
            budget_profile_id: Profile the change belongs to (None for user-level events)
            event_type: e.g. "transaction_created"
            payload: JSON-serialisable event data
            occurred_at: When it happened (default: now, UTC)
            actor_user_id: Who did it

        Returns:
            event_id

        Example:
            >>> repo = EventLogRepository(db)
            >>> repo.append_event(
            ...     budget_profile_id=1,
            ...     event_type="envelope_created",
            ...     payload={"envelope_id": 5, "name": "Groceries"},
            ...     actor_user_id=7,
            ... )
        """
        if occurred_at is None:
            occurred_at = datetime.now(timezone.utc)

        event = EventLog(
            budget_profile_id=budget_profile_id,
            actor_user_id=actor_user_id,
            event_type=event_type,
            payload_json=payload,
            occurred_at=occurred_at,
        )

        self.db.add(event)
        self.db.flush()

        return event.id

    def list_recent(
        self,
        budget_profile_id: int,
        limit: int = 50,
        event_types: Optional[List[str]] = None,
    ) -> List[EventLog]:
        """
        Most recent events of a profile, newest first

        Args:
            budget_profile_id: Profile ID
            limit: Max rows (default: 50)
            event_types: Optional filter by type
        """
        query = self.db.query(EventLog).filter(EventLog.budget_profile_id == budget_profile_id)

        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))

        return query.order_by(EventLog.id.desc()).limit(limit).all()

    def count_events(
        self,
        budget_profile_id: int,
        event_types: Optional[List[str]] = None
    ) -> int:
        query = self.db.query(EventLog).filter(EventLog.budget_profile_id == budget_profile_id)

        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))

        return query.count()
