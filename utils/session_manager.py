import logging
from urllib.parse import unquote

import streamlit as st
import streamlit.components.v1 as components

import auth
from infrastructure.query_cache import QueryCache, QueryKey
from services import agent_service
from use_cases.agent_gate import status_from_approval
from use_cases.session_models import SessionPhase, derive_session_phase

log = logging.getLogger(__name__)

"""
SESSION STATE CONTRACT

This module owns the per-browser-session Streamlit state.

st.session_state keys:

identity: IdentitySession | None
    signed-in identity (principal + delegation token)
    default: None
    owner: auth/session_manager

actor: ActorClient | None
    actor client bound to the current identity (anonymous before sign-in)
    default: None
    owner: session_manager.get_actor

query_cache: QueryCache
    cached actor reads, invalidated by mutations
    default: QueryCache()
    owner: infrastructure.query_cache

face_flow: "register" | "login" | None
    face capture dialog currently open
    default: None
    owner: views.camera_view

captured_images: dict[str, CapturedImage]
    last confirmed face capture per flow ("register" / "login")
    default: {}
    owner: views.camera_view

session_diag_seen: bool
    suppresses repeated "could not restore session" warnings
    default: False
    owner: system
"""


def init_session_state():
    if "identity" not in st.session_state:
        st.session_state.identity = None
    if "actor" not in st.session_state:
        st.session_state.actor = None
    if "query_cache" not in st.session_state:
        st.session_state.query_cache = QueryCache()
    if "face_flow" not in st.session_state:
        st.session_state.face_flow = None
    if "captured_images" not in st.session_state:
        st.session_state.captured_images = {}
    if "session_diag_seen" not in st.session_state:
        st.session_state.session_diag_seen = False


def persist_identity_token(token: str):
    max_age = auth.IDENTITY_TTL_DAYS * 24 * 3600
    components.html(
        f"""
        <script>
          document.cookie = "{auth.IDENTITY_COOKIE}={token}; path=/; max-age={max_age}; SameSite=Lax";
        </script>
        """,
        height=0,
    )


def clear_browser_identity_token():
    components.html(
        f"""
        <script>
          document.cookie = "{auth.IDENTITY_COOKIE}=; path=/; max-age=0; SameSite=Lax";
        </script>
        """,
        height=0,
    )


def _warn_once(message: str):
    if not st.session_state.session_diag_seen:
        st.warning(message)
        st.session_state.session_diag_seen = True


def check_and_restore_session():
    if st.session_state.identity is not None:
        return

    token_from_redirect = st.query_params.get("identity_token")
    try:
        token_from_cookie = st.context.cookies.get(auth.IDENTITY_COOKIE)
    except Exception:
        # During some tests contexts might not be fully available
        token_from_cookie = None

    token = token_from_redirect or (unquote(token_from_cookie) if token_from_cookie else None)
    if not token:
        return

    try:
        identity = auth.resolve_identity_token(token)
    except auth.IdentityError as e:
        log.warning(f"Identity restore failed: {e}")
        clear_browser_identity_token()
        _warn_once("Could not restore your session. Please sign in again.")
        return

    st.session_state.identity = identity
    st.session_state.actor = None
    log.info(f"Identity restored for principal {identity.principal}")

    if token_from_redirect:
        persist_identity_token(token)
        del st.query_params["identity_token"]


def get_cache() -> QueryCache:
    init_session_state()
    return st.session_state.query_cache


def get_actor():
    """Actor client bound to the signed-in identity, anonymous before sign-in."""
    if st.session_state.get("actor") is None:
        st.session_state.actor = auth.build_actor_client(st.session_state.get("identity"))
    return st.session_state.actor


def current_phase() -> SessionPhase:
    identity = st.session_state.get("identity")
    if identity is None:
        return SessionPhase.ANONYMOUS
    cache = get_cache()
    approval = cache.peek(QueryKey.IS_CALLER_APPROVED)
    return derive_session_phase(
        has_identity=True,
        has_profile=cache.peek(QueryKey.CURRENT_USER_PROFILE).data is not None,
        approval_status=status_from_approval(approval.data) if approval.is_fetched and not approval.is_error else None,
        is_face_logged_in=cache.peek(QueryKey.AGENT_PROFILE_BY_CALLER).data is not None,
    )


def logout():
    actor = st.session_state.get("actor")
    cache = get_cache()
    if actor is not None:
        result = agent_service.logout_agent(actor, cache)
        if not result.ok:
            log.info(f"Agent logout ignored: {result.error}")
    cache.clear()
    clear_browser_identity_token()
    st.session_state.identity = None
    st.session_state.actor = None
    st.session_state.captured_images = {}
    st.session_state.face_flow = None
    st.rerun()
