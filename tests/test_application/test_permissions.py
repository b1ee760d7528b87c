"""
Tests for access control: current profile resolution and role checks
"""
import pytest

from envelope_budget.application.errors import NotFoundError, ForbiddenError
from envelope_budget.application.permissions import (
    resolve_current_profile_id, ensure_user_role,
    ensure_not_owner_target, ensure_not_self, ensure_can_manage_member,
)
from envelope_budget.domain.roles import Role, ANY_MEMBER, ADMIN_OR_OWNER
from envelope_budget.infrastructure.db.models import BudgetProfile, UserBudgetProfile


class TestResolveCurrentProfile:
    def test_returns_membership_profile(self, db_session, users, profile):
        assert resolve_current_profile_id(db_session, users.member.id) == profile.id

    def test_no_membership(self, db_session, users, profile):
        with pytest.raises(NotFoundError):
            resolve_current_profile_id(db_session, users.outsider.id)

    def test_oldest_membership_wins(self, db_session, users, profile):
        other = BudgetProfile(name="Side budget", currency="EUR", owner_id=users.outsider.id)
        db_session.add(other)
        db_session.flush()
        db_session.add(UserBudgetProfile(user_id=users.outsider.id, budget_profile_id=other.id, role=Role.OWNER))
        db_session.add(UserBudgetProfile(user_id=users.member.id, budget_profile_id=other.id, role=Role.ADMIN))
        db_session.commit()

        assert resolve_current_profile_id(db_session, users.member.id) == profile.id


class TestEnsureUserRole:
    def test_member_passes_member_check(self, db_session, users, profile):
        link = ensure_user_role(db_session, users.member.id, profile.id, ANY_MEMBER)
        assert link.role == Role.MEMBER

    def test_member_fails_admin_check(self, db_session, users, profile):
        with pytest.raises(ForbiddenError):
            ensure_user_role(db_session, users.member.id, profile.id, ADMIN_OR_OWNER)

    def test_owner_passes_admin_check(self, db_session, users, profile):
        link = ensure_user_role(db_session, users.owner.id, profile.id, ADMIN_OR_OWNER)
        assert link.role == Role.OWNER

    def test_admin_fails_owner_only_check(self, db_session, users, profile):
        with pytest.raises(ForbiddenError):
            ensure_user_role(db_session, users.admin.id, profile.id, [Role.OWNER])

    def test_non_member(self, db_session, users, profile):
        with pytest.raises(NotFoundError):
            ensure_user_role(db_session, users.outsider.id, profile.id, ANY_MEMBER)

    def test_unknown_profile(self, db_session, users, profile):
        with pytest.raises(NotFoundError):
            ensure_user_role(db_session, users.owner.id, profile.id + 100, ANY_MEMBER)

    def test_empty_requirement_is_a_configuration_error(self, db_session, users, profile):
        with pytest.raises(RuntimeError):
            ensure_user_role(db_session, users.owner.id, profile.id, [])

    def test_check_does_not_write(self, db_session, users, profile):
        ensure_user_role(db_session, users.member.id, profile.id, ANY_MEMBER)
        assert not db_session.new
        assert not db_session.dirty


class TestMembershipPolicies:
    def _link(self, user_id, role):
        return UserBudgetProfile(user_id=user_id, budget_profile_id=1, role=role)

    def test_owner_target_rejected(self):
        with pytest.raises(ForbiddenError, match="owner"):
            ensure_not_owner_target(self._link(1, Role.OWNER), "remove")

    def test_self_rejected(self):
        with pytest.raises(ForbiddenError):
            ensure_not_self(5, 5, "remove")

    def test_self_custom_error(self):
        with pytest.raises(ValueError):
            ensure_not_self(5, 5, "remove", error=ValueError)

    def test_admin_cannot_manage_admin(self):
        with pytest.raises(ForbiddenError):
            ensure_can_manage_member(self._link(2, Role.ADMIN), self._link(3, Role.ADMIN), "remove")

    def test_owner_can_manage_admin(self):
        ensure_can_manage_member(self._link(1, Role.OWNER), self._link(3, Role.ADMIN), "remove")

    def test_admin_can_manage_member(self):
        ensure_can_manage_member(self._link(2, Role.ADMIN), self._link(3, Role.MEMBER), "remove")
