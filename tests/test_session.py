from unittest.mock import MagicMock, patch

import streamlit as st

import auth
from infrastructure.actor_client import ActorCallError
from infrastructure.query_cache import QueryCache, QueryKey
from use_cases.session_models import IdentitySession, SessionPhase
from utils import session_manager


def test_init_session_state():
    st.session_state.clear()
    session_manager.init_session_state()
    assert st.session_state.identity is None
    assert st.session_state.actor is None
    assert isinstance(st.session_state.query_cache, QueryCache)
    assert st.session_state.face_flow is None
    assert st.session_state.captured_images == {}


def test_init_session_state_sets_session_diag_seen_default():
    st.session_state.clear()
    session_manager.init_session_state()
    assert "session_diag_seen" in st.session_state
    assert st.session_state.session_diag_seen is False


def test_init_session_state_keeps_existing_cache():
    st.session_state.clear()
    cache = QueryCache()
    st.session_state.query_cache = cache
    session_manager.init_session_state()
    assert st.session_state.query_cache is cache


@patch("streamlit.rerun")
@patch("utils.session_manager.clear_browser_identity_token")
def test_logout(mock_clear, mock_rerun):
    st.session_state.clear()
    session_manager.init_session_state()
    cache = st.session_state.query_cache
    cache.fetch(QueryKey.IS_ADMIN, lambda: True)
    actor = MagicMock()
    st.session_state.identity = IdentitySession(principal="aaaaa", token="tok")
    st.session_state.actor = actor

    session_manager.logout()

    actor.logout_agent.assert_called_once()
    mock_clear.assert_called_once()
    mock_rerun.assert_called_once()
    assert st.session_state.identity is None
    assert st.session_state.actor is None
    assert cache.peek(QueryKey.IS_ADMIN).is_fetched is False


@patch("streamlit.rerun")
@patch("utils.session_manager.clear_browser_identity_token")
def test_logout_ignores_agent_logout_failure(mock_clear, mock_rerun):
    st.session_state.clear()
    session_manager.init_session_state()
    cache = st.session_state.query_cache
    cache.fetch(QueryKey.CURRENT_USER_PROFILE, lambda: None)
    actor = MagicMock()
    actor.logout_agent.side_effect = ActorCallError("logoutAgent", "Agent not logged in")
    st.session_state.identity = IdentitySession(principal="aaaaa", token="tok")
    st.session_state.actor = actor

    session_manager.logout()

    assert st.session_state.identity is None
    assert cache.peek(QueryKey.CURRENT_USER_PROFILE).is_fetched is False
    mock_rerun.assert_called_once()


@patch("utils.session_manager.persist_identity_token")
@patch("auth.resolve_identity_token")
def test_restore_from_redirect_token(mock_resolve, mock_persist):
    st.session_state.clear()
    session_manager.init_session_state()
    mock_resolve.return_value = IdentitySession(principal="aaaaa", token="tok")

    with patch.object(session_manager.st, "query_params", {"identity_token": "tok"}):
        session_manager.check_and_restore_session()

    assert st.session_state.identity.principal == "aaaaa"
    mock_resolve.assert_called_once_with("tok")
    mock_persist.assert_called_once_with("tok")


@patch("utils.session_manager.clear_browser_identity_token")
@patch("auth.resolve_identity_token", side_effect=auth.IdentityError("expired"))
def test_restore_failure_warns_once(mock_resolve, mock_clear):
    st.session_state.clear()
    session_manager.init_session_state()

    with patch.object(session_manager.st, "query_params", {"identity_token": "stale"}), patch.object(
        session_manager.st, "warning"
    ) as mock_warning:
        session_manager.check_and_restore_session()
        session_manager.check_and_restore_session()

    assert st.session_state.identity is None
    assert mock_warning.call_count == 1
    assert mock_clear.call_count == 2


@patch("auth.build_actor_client")
def test_get_actor_is_built_once(mock_build):
    st.session_state.clear()
    session_manager.init_session_state()
    first = session_manager.get_actor()
    second = session_manager.get_actor()
    assert first is second
    mock_build.assert_called_once_with(None)


def test_current_phase_from_cache():
    st.session_state.clear()
    session_manager.init_session_state()
    assert session_manager.current_phase() == SessionPhase.ANONYMOUS

    st.session_state.identity = IdentitySession(principal="aaaaa", token="tok")
    cache = st.session_state.query_cache
    assert session_manager.current_phase() == SessionPhase.IDENTIFIED

    cache.fetch(QueryKey.CURRENT_USER_PROFILE, lambda: {"name": "Asha"})
    cache.fetch(QueryKey.IS_CALLER_APPROVED, lambda: True)
    assert session_manager.current_phase() == SessionPhase.APPROVED

    cache.fetch(QueryKey.AGENT_PROFILE_BY_CALLER, lambda: {"mobile": "1"})
    assert session_manager.current_phase() == SessionPhase.FACE_VERIFIED
