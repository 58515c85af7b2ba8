import sys
import importlib
from unittest.mock import patch, MagicMock

from use_cases.auth_flow import AuthFlowResult
from use_cases.bootstrap import StartupResult


def test_app_integration_guard():
    import streamlit as st
    st.session_state.clear()

    with patch('use_cases.bootstrap.run_startup') as mock_bootstrap, \
         patch('use_cases.auth_flow.ensure_identity_session') as mock_auth_flow, \
         patch('views.agent_view.render_agent_dashboard') as mock_agent_dashboard, \
         patch('auth.build_actor_client', return_value=MagicMock()) as mock_build_actor:

        # The identity gate owns session initialization, so the fake must do it too.
        from utils import session_manager
        def fake_identity_gate():
            session_manager.init_session_state()
            return AuthFlowResult(status="CONTINUE", reason="identified", principal="aaaaa-bbbbb")

        mock_auth_flow.side_effect = fake_identity_gate
        mock_bootstrap.return_value = StartupResult(status="READY", view="AGENT_DASHBOARD")

        if 'app' in sys.modules:
            del sys.modules['app']
        importlib.import_module('app')

        mock_auth_flow.assert_called()
        mock_bootstrap.assert_called()
        mock_build_actor.assert_called_once()
        mock_agent_dashboard.assert_called_once()

        # Session state contract keys
        assert 'identity' in st.session_state
        assert 'actor' in st.session_state
        assert 'query_cache' in st.session_state
        assert 'face_flow' in st.session_state
        assert 'captured_images' in st.session_state
        assert 'session_diag_seen' in st.session_state
