from unittest.mock import MagicMock, patch

from infrastructure.query_cache import QueryCache
from use_cases import agent_gate, auth_flow, bootstrap


@patch("use_cases.auth_flow.session_manager.check_and_restore_session")
@patch("use_cases.auth_flow.session_manager.init_session_state")
def test_auth_flow_contract(_, __) -> None:
    assert hasattr(auth_flow, "ensure_identity_session")
    auth_flow.session_manager.st.session_state.clear()
    result = auth_flow.ensure_identity_session()
    assert isinstance(result, auth_flow.AuthFlowResult)
    assert result.status in {"CONTINUE", "STOP"}


def test_bootstrap_contract() -> None:
    actor = MagicMock()
    actor.get_caller_user_profile.return_value = {"name": "Asha", "email": "a@x.com", "mobile": "1"}
    actor.is_caller_admin.return_value = True
    result = bootstrap.run_startup(actor, QueryCache(), has_identity=True)
    assert isinstance(result, bootstrap.StartupResult)
    assert result.status in {"LOADING", "ERROR", "READY"}
    assert result.view in {"AUTH", "PROFILE_SETUP", "ADMIN_DASHBOARD", "AGENT_DASHBOARD"}


def test_agent_gate_contract() -> None:
    actor = MagicMock()
    actor.is_caller_approved.return_value = False
    actor.get_agent_profile_by_caller.return_value = None
    result = agent_gate.run_agent_gate(actor, QueryCache())
    assert isinstance(result, agent_gate.AgentGateResult)
    assert result.view in {"LOADING", "ERROR", "NOT_APPROVED", "LOGIN_REQUIRED", "DASHBOARD"}
