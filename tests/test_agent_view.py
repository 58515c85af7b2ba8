from unittest.mock import MagicMock, patch

from infrastructure.query_cache import QueryKey, QueryResult
from use_cases.agent_gate import AgentGateResult
from views import agent_view


@patch("views.agent_view.ui.show_loading_overlay")
@patch("views.agent_view.agent_gate.run_agent_gate", return_value=AgentGateResult(view="LOADING"))
@patch("views.agent_view.session_manager")
@patch("views.agent_view.st")
def test_agent_gate_loading_is_compact(mock_st, _mock_session, _mock_gate, mock_overlay):
    agent_view.render_agent_dashboard()

    mock_st.caption.assert_called_once()
    mock_overlay.assert_not_called()
    mock_st.tabs.assert_not_called()


@patch("views.agent_view.ui.render_error_panel", return_value=True)
@patch("views.agent_view.st")
def test_failed_records_retry_invalidates_key(mock_st, _mock_panel):
    cache = MagicMock()
    failed = QueryResult.failure(RuntimeError("blip"))

    assert agent_view._load_failed(failed, "leads", cache, QueryKey.LEADS_BY_AGENT) is True
    cache.invalidate.assert_called_once_with(QueryKey.LEADS_BY_AGENT)
    mock_st.rerun.assert_called_once()


@patch("views.agent_view.ui.render_error_panel")
def test_loaded_records_are_not_failures(mock_panel):
    assert agent_view._load_failed(QueryResult.success([]), "leads", MagicMock(), QueryKey.LEADS_BY_AGENT) is False
    mock_panel.assert_not_called()
