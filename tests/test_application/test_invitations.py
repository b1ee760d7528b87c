"""
Tests for invitation use cases
"""
from datetime import datetime, timedelta, timezone

import pytest

from envelope_budget.application.errors import NotFoundError, ForbiddenError, ConflictError
from envelope_budget.application.invitations import (
    list_pending_invitations,
    InviteUserUseCase,
    RevokeInvitationUseCase,
    AcceptInvitationUseCase,
    InvitationValidationError,
)
from envelope_budget.domain.invitation import InvitationStatus, as_utc
from envelope_budget.domain.roles import Role
from envelope_budget.infrastructure.db.models import EventLog, Invitation, User, UserBudgetProfile


NOW = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)


def _invite(db_session, actor_id, profile_id, email="new.person@example.com", role="MEMBER", now=NOW):
    return InviteUserUseCase(db_session).execute(actor_id, profile_id, email, role, now=now)


def _signup(db_session, email="new.person@example.com"):
    user = User(email=email)
    db_session.add(user)
    db_session.commit()
    return user


class TestInviteUser:
    def test_unknown_email_creates_pending_invitation(self, db_session, users, profile):
        invitation = _invite(db_session, users.admin.id, profile.id, role="ADMIN")

        assert isinstance(invitation, Invitation)
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.role == Role.ADMIN
        assert len(invitation.token) == 64
        assert as_utc(invitation.expires_at) == NOW + timedelta(days=7)
        assert invitation.invited_by_user_id == users.admin.id

        event = db_session.query(EventLog).filter(EventLog.event_type == "invitation_created").one()
        assert event.payload_json["email"] == "new.person@example.com"
        assert "token" not in event.payload_json

    def test_existing_user_is_added_directly(self, db_session, users, profile):
        link = _invite(db_session, users.owner.id, profile.id, email=users.outsider.email)

        assert isinstance(link, UserBudgetProfile)
        assert link.user_id == users.outsider.id
        assert link.role == Role.MEMBER
        assert db_session.query(Invitation).count() == 0
        assert db_session.query(EventLog).filter(EventLog.event_type == "member_added").count() == 1

    def test_existing_member_conflict(self, db_session, users, profile):
        with pytest.raises(ConflictError):
            _invite(db_session, users.owner.id, profile.id, email=users.member.email)

    def test_duplicate_pending_conflict(self, db_session, users, profile):
        _invite(db_session, users.owner.id, profile.id)

        with pytest.raises(ConflictError):
            _invite(db_session, users.admin.id, profile.id)

    def test_lapsed_invitation_does_not_block_a_new_one(self, db_session, users, profile):
        stale = _invite(db_session, users.owner.id, profile.id, now=NOW - timedelta(days=30))
        assert list_pending_invitations(db_session, users.admin.id, profile.id, now=NOW) == []

        fresh = _invite(db_session, users.admin.id, profile.id)

        db_session.refresh(stale)
        assert stale.status == InvitationStatus.EXPIRED
        assert fresh.status == InvitationStatus.PENDING
        assert [inv.id for inv in list_pending_invitations(db_session, users.admin.id, profile.id, now=NOW)] == [fresh.id]

    def test_owner_role_rejected(self, db_session, users, profile):
        with pytest.raises(InvitationValidationError, match="OWNER"):
            _invite(db_session, users.owner.id, profile.id, role="OWNER")

    def test_unknown_role_rejected(self, db_session, users, profile):
        with pytest.raises(InvitationValidationError):
            _invite(db_session, users.owner.id, profile.id, role="VIEWER")

    def test_cannot_invite_profile_owner(self, db_session, users, profile):
        with pytest.raises(InvitationValidationError, match="owner"):
            _invite(db_session, users.admin.id, profile.id, email="OWNER@example.com")

    def test_member_cannot_invite(self, db_session, users, profile):
        with pytest.raises(ForbiddenError):
            _invite(db_session, users.member.id, profile.id)

        assert db_session.query(Invitation).count() == 0


class TestListAndRevoke:
    def test_list_pending_hides_expired(self, db_session, users, profile):
        fresh = _invite(db_session, users.owner.id, profile.id, email="fresh@example.com")
        _invite(db_session, users.owner.id, profile.id, email="stale@example.com", now=NOW - timedelta(days=30))

        pending = list_pending_invitations(db_session, users.admin.id, profile.id, now=NOW)

        assert [inv.id for inv in pending] == [fresh.id]

    def test_member_cannot_list(self, db_session, users, profile):
        with pytest.raises(ForbiddenError):
            list_pending_invitations(db_session, users.member.id, profile.id, now=NOW)

    def test_revoke(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)

        RevokeInvitationUseCase(db_session).execute(users.admin.id, profile.id, invitation.id)

        assert db_session.query(Invitation).count() == 0
        assert db_session.query(EventLog).filter(EventLog.event_type == "invitation_revoked").count() == 1

    def test_revoke_accepted_rejected(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)
        invitation.status = InvitationStatus.ACCEPTED
        db_session.commit()

        with pytest.raises(InvitationValidationError, match="ACCEPTED"):
            RevokeInvitationUseCase(db_session).execute(users.owner.id, profile.id, invitation.id)

    def test_revoke_unknown(self, db_session, users, profile):
        with pytest.raises(NotFoundError):
            RevokeInvitationUseCase(db_session).execute(users.owner.id, profile.id, "missing")


class TestAcceptInvitation:
    def test_accept_creates_membership(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id, role="ADMIN")
        new_user = _signup(db_session)

        link = AcceptInvitationUseCase(db_session).execute(new_user.id, invitation.token, now=NOW + timedelta(days=1))

        assert link.budget_profile_id == profile.id
        assert link.role == Role.ADMIN
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.ACCEPTED
        assert invitation.accepted_by_user_id == new_user.id

    def test_email_match_is_case_insensitive(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)
        new_user = _signup(db_session, email="New.Person@Example.com")

        link = AcceptInvitationUseCase(db_session).execute(new_user.id, invitation.token, now=NOW)

        assert link.user_id == new_user.id

    def test_expired_token_is_marked_expired(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)
        new_user = _signup(db_session)

        with pytest.raises(InvitationValidationError, match="expired"):
            AcceptInvitationUseCase(db_session).execute(new_user.id, invitation.token, now=NOW + timedelta(days=8))

        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED
        assert db_session.query(UserBudgetProfile).filter(UserBudgetProfile.user_id == new_user.id).count() == 0

    def test_email_mismatch(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)
        stranger = _signup(db_session, email="someone.else@example.com")

        with pytest.raises(InvitationValidationError, match="does not match"):
            AcceptInvitationUseCase(db_session).execute(stranger.id, invitation.token, now=NOW)

    def test_invalid_token(self, db_session, users, profile):
        new_user = _signup(db_session)

        with pytest.raises(InvitationValidationError, match="Invalid"):
            AcceptInvitationUseCase(db_session).execute(new_user.id, "0" * 64, now=NOW)

    def test_token_cannot_be_reused(self, db_session, users, profile):
        invitation = _invite(db_session, users.owner.id, profile.id)
        new_user = _signup(db_session)
        AcceptInvitationUseCase(db_session).execute(new_user.id, invitation.token, now=NOW)

        with pytest.raises(InvitationValidationError):
            AcceptInvitationUseCase(db_session).execute(new_user.id, invitation.token, now=NOW)
