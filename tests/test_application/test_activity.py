"""
Tests for the audit log repository and the activity feed
"""
from datetime import datetime, timedelta, timezone

import pytest

from envelope_budget.application.activity import list_recent_activity
from envelope_budget.application.errors import ForbiddenError
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository


BASE = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def events(db_session, users, profile):
    repo = EventLogRepository(db_session)
    for i, event_type in enumerate(["envelope_created", "transaction_created", "transaction_updated"]):
        repo.append_event(
            budget_profile_id=profile.id,
            event_type=event_type,
            payload={"n": i},
            occurred_at=BASE + timedelta(minutes=i),
            actor_user_id=users.member.id,
        )
    repo.append_event(budget_profile_id=profile.id + 1, event_type="transaction_created", payload={})
    db_session.commit()


def test_newest_first_within_profile(db_session, users, profile, events):
    feed = list_recent_activity(db_session, users.admin.id, profile.id)

    assert [e.event_type for e in feed] == ["transaction_updated", "transaction_created", "envelope_created"]
    assert feed[0].payload_json == {"n": 2}


def test_filter_by_type_and_limit(db_session, users, profile, events):
    feed = list_recent_activity(
        db_session, users.owner.id, profile.id, limit=1, event_types=["transaction_created", "envelope_created"],
    )

    assert len(feed) == 1
    assert feed[0].event_type == "transaction_created"


def test_members_cannot_read_feed(db_session, users, profile, events):
    with pytest.raises(ForbiddenError):
        list_recent_activity(db_session, users.member.id, profile.id)


def test_count_events(db_session, profile, events):
    repo = EventLogRepository(db_session)

    assert repo.count_events(profile.id) == 3
    assert repo.count_events(profile.id, event_types=["transaction_created"]) == 1
