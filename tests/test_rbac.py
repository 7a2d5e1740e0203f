"""Tests for the role hierarchy and permission matrix."""

from __future__ import annotations

import itertools

import pytest

from app.features.permissions.rbac import (
    PERMISSION_MATRIX,
    ROLE_LEVELS,
    Action,
    Resource,
    Role,
    accessible_resources,
    allowed_actions,
    is_allowed,
    is_at_least,
    is_role_higher,
    level_of,
    matrix_entries,
    minimum_role_for,
)


ROLE_PAIRS = [(low, high) for low, high in itertools.product(Role, Role) if level_of(low) <= level_of(high)]


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------


class TestRoleHierarchy:
    def test_levels_are_fixed(self):
        assert dict(ROLE_LEVELS) == {Role.GUEST: 0, Role.ADMIN: 1, Role.SUPERADMIN: 2, Role.OWNER: 3}

    def test_levels_strictly_increase(self):
        levels = [level_of(role) for role in (Role.GUEST, Role.ADMIN, Role.SUPERADMIN, Role.OWNER)]
        assert levels == sorted(levels)
        assert len(set(levels)) == len(levels)

    def test_levels_are_unique_per_role(self):
        assert len(set(ROLE_LEVELS.values())) == len(Role)

    def test_role_values_are_tags(self):
        assert {role.value for role in Role} == {"GUEST", "ADMIN", "SUPERADMIN", "OWNER"}

    def test_is_at_least_is_inclusive(self):
        assert is_at_least(Role.ADMIN, Role.ADMIN) is True
        assert is_at_least(Role.ADMIN, Role.SUPERADMIN) is False

    def test_is_role_higher_is_strict(self):
        assert is_role_higher(Role.OWNER, Role.SUPERADMIN) is True
        assert is_role_higher(Role.ADMIN, Role.ADMIN) is False

    @pytest.mark.parametrize("bad", ["KING", None, 3, "guest"])
    def test_unknown_role_is_fatal(self, bad):
        with pytest.raises(ValueError, match="Unknown role"):
            level_of(bad)

    def test_is_allowed_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            is_allowed("KING", Resource.COLLEGE, Action.VIEW)


# ---------------------------------------------------------------------------
# Matrix contents
# ---------------------------------------------------------------------------


class TestMatrix:
    def test_matrix_is_read_only(self):
        with pytest.raises(TypeError):
            PERMISSION_MATRIX[(Resource.SETTINGS, Action.VIEW)] = Role.GUEST

    def test_entries_cover_every_pair(self):
        entries = matrix_entries()
        assert len(entries) == len(Resource) * len(Action)
        assert {(e.resource, e.action) for e in entries} == set(itertools.product(Resource, Action))

    def test_settings_is_owner_only(self):
        for action in Action:
            assert minimum_role_for(Resource.SETTINGS, action) is None
            assert is_allowed(Role.SUPERADMIN, Resource.SETTINGS, action) is False
            assert is_allowed(Role.OWNER, Resource.SETTINGS, action) is True

    def test_guest_sees_public_content(self):
        for resource in (Resource.UNIVERSITY, Resource.COLLEGE, Resource.PROGRAM, Resource.BLOG,
                         Resource.SECTION, Resource.STATISTIC, Resource.DASHBOARD):
            assert is_allowed(Role.GUEST, resource, Action.VIEW) is True

    def test_guest_cannot_see_users_or_audit_logs(self):
        assert is_allowed(Role.GUEST, Resource.USER, Action.VIEW) is False
        assert is_allowed(Role.GUEST, Resource.AUDIT_LOG, Action.VIEW) is False
        assert is_allowed(Role.ADMIN, Resource.AUDIT_LOG, Action.VIEW) is False
        assert is_allowed(Role.SUPERADMIN, Resource.AUDIT_LOG, Action.VIEW) is True

    def test_college_delete_needs_superadmin(self):
        assert is_allowed(Role.ADMIN, Resource.COLLEGE, Action.DELETE) is False
        assert is_allowed(Role.SUPERADMIN, Resource.COLLEGE, Action.DELETE) is True

    def test_user_delete_is_owner_only(self):
        assert minimum_role_for(Resource.USER, Action.DELETE) is None
        assert is_allowed(Role.SUPERADMIN, Resource.USER, Action.DELETE) is False

    def test_allowed_actions_follow_action_order(self):
        assert allowed_actions(Role.ADMIN, Resource.BLOG) == [Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE]
        assert allowed_actions(Role.GUEST, Resource.BLOG) == [Action.VIEW]
        assert allowed_actions(Role.GUEST, Resource.SETTINGS) == []

    def test_accessible_resources(self):
        assert Resource.USER not in accessible_resources(Role.GUEST)
        assert Resource.USER in accessible_resources(Role.ADMIN)
        assert accessible_resources(Role.OWNER) == list(Resource)


# ---------------------------------------------------------------------------
# Properties over every (role, resource, action)
# ---------------------------------------------------------------------------


class TestMatrixProperties:
    @pytest.mark.parametrize("resource,action", list(itertools.product(Resource, Action)))
    def test_owner_is_always_allowed(self, resource, action):
        assert is_allowed(Role.OWNER, resource, action) is True

    @pytest.mark.parametrize("resource,action", list(itertools.product(Resource, Action)))
    def test_default_deny_for_missing_entries(self, resource, action):
        if (resource, action) in PERMISSION_MATRIX:
            pytest.skip("pair has an entry")
        for role in (Role.GUEST, Role.ADMIN, Role.SUPERADMIN):
            assert is_allowed(role, resource, action) is False

    @pytest.mark.parametrize("resource,action", list(itertools.product(Resource, Action)))
    def test_guest_only_through_explicit_entries(self, resource, action):
        expected = PERMISSION_MATRIX.get((resource, action)) is Role.GUEST
        assert is_allowed(Role.GUEST, resource, action) is expected

    @pytest.mark.parametrize("low,high", ROLE_PAIRS)
    def test_monotonic_in_role(self, low, high):
        for resource, action in itertools.product(Resource, Action):
            if is_allowed(low, resource, action):
                assert is_allowed(high, resource, action), (low, high, resource, action)

