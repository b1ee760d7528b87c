"""
Tests for the role hierarchy
"""
import pytest

from envelope_budget.domain.roles import (
    Role, ROLE_LEVELS, ASSIGNABLE_ROLES, ANY_MEMBER, ADMIN_OR_OWNER,
    role_level, min_required_level, has_required_role,
)


def test_levels_are_ordered():
    assert role_level(Role.MEMBER) < role_level(Role.ADMIN) < role_level(Role.OWNER)
    assert ROLE_LEVELS == {Role.MEMBER: 1, Role.ADMIN: 2, Role.OWNER: 3}


def test_role_level_accepts_plain_strings():
    assert role_level("ADMIN") == 2


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        role_level("SUPERUSER")


def test_min_required_level_is_lowest_allowed():
    assert min_required_level(ADMIN_OR_OWNER) == 2
    assert min_required_level(ANY_MEMBER) == 1
    assert min_required_level([Role.OWNER]) == 3


def test_min_required_level_empty_raises():
    with pytest.raises(ValueError):
        min_required_level([])


class TestHasRequiredRole:
    def test_owner_satisfies_admin_requirement(self):
        assert has_required_role(Role.OWNER, ADMIN_OR_OWNER)

    def test_member_does_not_satisfy_admin_requirement(self):
        assert not has_required_role(Role.MEMBER, ADMIN_OR_OWNER)

    def test_requirement_is_a_threshold_not_membership(self):
        # {MEMBER} alone still admits higher roles
        assert has_required_role(Role.OWNER, [Role.MEMBER])
        assert has_required_role(Role.ADMIN, [Role.MEMBER])

    def test_owner_only(self):
        assert not has_required_role(Role.ADMIN, [Role.OWNER])
        assert has_required_role(Role.OWNER, [Role.OWNER])


def test_owner_is_not_assignable():
    assert Role.OWNER not in ASSIGNABLE_ROLES
    assert set(ASSIGNABLE_ROLES) == {Role.ADMIN, Role.MEMBER}
