"""
Tests: role policy.

Run with:
    pytest tests/test_policy.py -v
"""

import pytest

from policy import ADMIN, CLIENT, DRIVER, HELPDESK, ROLES, SUPER_ADMIN, VENDOR, can_perform, normalize_role


class TestNormalizeRole:

    def test_case_and_whitespace(self):
        assert normalize_role(" super_admin ") == SUPER_ADMIN
        assert normalize_role("Admin") == ADMIN

    @pytest.mark.parametrize("value", [None, "", "OWNER", 3])
    def test_unknown(self, value):
        assert normalize_role(value) is None


class TestProfileAccess:

    @pytest.mark.parametrize("action", ["view_profile", "update_profile", "view_files"])
    def test_self_always_allowed(self, action):
        for role in ROLES:
            assert can_perform(role, action, role, actor_id="u1", target_id="u1")

    @pytest.mark.parametrize("action", ["view_profile", "update_profile", "view_files"])
    def test_staff_on_others(self, action):
        assert can_perform(HELPDESK, action, CLIENT, actor_id="a", target_id="b")
        assert can_perform(ADMIN, action, CLIENT, actor_id="a", target_id="b")
        assert not can_perform(VENDOR, action, CLIENT, actor_id="a", target_id="b")
        assert not can_perform(DRIVER, action, DRIVER, actor_id="a", target_id="b")


class TestUserAdministration:

    def test_change_role_super_admin_only(self):
        assert can_perform(SUPER_ADMIN, "change_role", CLIENT, actor_id="a", target_id="b")
        assert not can_perform(ADMIN, "change_role", CLIENT, actor_id="a", target_id="b")

    def test_change_own_role_denied(self):
        assert not can_perform(SUPER_ADMIN, "change_role", SUPER_ADMIN, actor_id="a", target_id="a")

    def test_change_status_staff(self):
        assert can_perform(HELPDESK, "change_status", DRIVER)
        assert not can_perform(CLIENT, "change_status", DRIVER)

    def test_delete_user(self):
        assert can_perform(ADMIN, "delete_user", VENDOR, actor_id="a", target_id="b")
        assert not can_perform(ADMIN, "delete_user", ADMIN, actor_id="a", target_id="a")
        assert not can_perform(ADMIN, "delete_user", SUPER_ADMIN, actor_id="a", target_id="b")
        assert not can_perform(SUPER_ADMIN, "delete_user", SUPER_ADMIN, actor_id="a", target_id="b")
        assert not can_perform(HELPDESK, "delete_user", CLIENT, actor_id="a", target_id="b")

    def test_restore_and_list_deleted(self):
        for action in ("restore_user", "list_deleted_users"):
            assert can_perform(ADMIN, action)
            assert can_perform(SUPER_ADMIN, action)
            assert not can_perform(HELPDESK, action)

    def test_purge(self):
        assert can_perform(SUPER_ADMIN, "purge_user", CLIENT, actor_id="a", target_id="b")
        assert not can_perform(SUPER_ADMIN, "purge_user", SUPER_ADMIN, actor_id="a", target_id="a")
        assert not can_perform(ADMIN, "purge_user", CLIENT, actor_id="a", target_id="b")

    def test_super_admin_never_purged(self):
        assert not can_perform(SUPER_ADMIN, "purge_user", SUPER_ADMIN, actor_id="a", target_id="b")

    def test_settings(self):
        assert can_perform(ADMIN, "view_settings", CLIENT)
        assert not can_perform(ADMIN, "update_settings", CLIENT)
        assert can_perform(SUPER_ADMIN, "update_settings", CLIENT)


class TestCalculator:

    def test_manage_configurations(self):
        assert can_perform(ADMIN, "manage_configurations")
        assert not can_perform(VENDOR, "manage_configurations")

    @pytest.mark.parametrize("role", ROLES)
    def test_any_role_may_calculate(self, role):
        assert can_perform(role, "run_calculator")
        assert can_perform(role, "save_calculation")

    def test_all_history_admins_only(self):
        assert can_perform(SUPER_ADMIN, "view_all_history")
        assert not can_perform(DRIVER, "view_all_history")


class TestUnknowns:

    def test_unknown_role_denied(self):
        assert not can_perform("OWNER", "run_calculator")
        assert not can_perform(None, "view_profile", actor_id="a", target_id="a")

    def test_unknown_action_denied(self):
        assert not can_perform(SUPER_ADMIN, "launch_rockets")

    def test_missing_ids_are_not_self(self):
        assert not can_perform(CLIENT, "view_profile", CLIENT)
