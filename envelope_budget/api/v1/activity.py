"""
Activity feed endpoint (audit log of the current profile)
"""
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from envelope_budget.api.deps import get_db, get_current_user, get_current_profile_id
from envelope_budget.application.activity import list_recent_activity
from envelope_budget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/activity", tags=["activity"])


class ActivityEntryResponse(BaseModel):
    id: int
    event_type: str
    actor_user_id: int | None
    payload: dict[str, Any]
    occurred_at: datetime


@router.get("/", response_model=list[ActivityEntryResponse])
def get_activity(
    limit: int = Query(default=50, ge=1, le=200),
    event_type: list[str] | None = Query(default=None),
    user: User = Depends(get_current_user),
    budget_profile_id: int = Depends(get_current_profile_id),
    db: Session = Depends(get_db),
):
    """Latest audit entries, newest first (ADMIN+)"""
    events = list_recent_activity(db, user.id, budget_profile_id, limit=limit, event_types=event_type)
    return [
        ActivityEntryResponse(
            id=e.id,
            event_type=e.event_type,
            actor_user_id=e.actor_user_id,
            payload=e.payload_json,
            occurred_at=e.occurred_at,
        )
        for e in events
    ]
