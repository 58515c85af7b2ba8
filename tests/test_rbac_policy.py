import logging

import pytest

from use_cases import rbac_policy


def test_select_dashboard():
    assert rbac_policy.select_dashboard(True) == "ADMIN"
    assert rbac_policy.select_dashboard(False) == "AGENT"
    assert rbac_policy.select_dashboard(None) == "AGENT"


@pytest.mark.parametrize("action", sorted(rbac_policy.ADMIN_ACTIONS))
def test_admin_actions_allowed_for_admin(action):
    assert rbac_policy.enforce(True, action) is True


@pytest.mark.parametrize("action", sorted(rbac_policy.ADMIN_ACTIONS))
def test_agent_denied_admin_actions_and_logged(action, caplog):
    with caplog.at_level(logging.WARNING, logger="use_cases.rbac_policy"):
        assert rbac_policy.enforce(False, action, principal="abc-123") is False
    assert f"Action {action} denied for principal abc-123" in caplog.text


def test_agent_may_manage_own_records():
    assert rbac_policy.enforce(False, "MANAGE_OWN_RECORDS") is True


def test_unknown_action_denied_for_everyone():
    assert rbac_policy.enforce(True, "DROP_DATABASE") is False
    assert rbac_policy.enforce(False, "DROP_DATABASE") is False
