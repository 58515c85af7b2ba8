import os
from datetime import datetime

import streamlit as st
import streamlit.components.v1 as components

from infrastructure.observability import setup_observability
setup_observability()

import ui
from infrastructure.query_cache import QueryKey
from use_cases import auth_flow, bootstrap, rbac_policy
from utils import session_manager
from views import admin_view, agent_view, login_view, profile_setup_view

# --- PAGE SETTINGS ---
st.set_page_config(page_title="VR Homes Infra CRM", page_icon="🏠", layout="wide")

# --- PROD HARDENING ---
FORCE_HTTPS = os.getenv("FORCE_HTTPS", "False").lower() == "true"
TRUST_PROXY = os.getenv("TRUST_PROXY", "False").lower() == "true"

# Health Check (Basic load-balancer heartbeat)
if st.query_params.get("health") == "1":
    st.write({"status": "ok", "version": "1.0", "uptime": datetime.utcnow().isoformat()})
    st.stop()


def request_is_https():
    """Scheme of the original request; only proxy headers are trusted when TRUST_PROXY is set."""
    if TRUST_PROXY:
        return st.context.headers.get("x-forwarded-proto", "http").lower() == "https"
    return False


if FORCE_HTTPS and not request_is_https():
    st.error("🚨 Insecure connection. Please use HTTPS.")
    st.stop()

components.html(
    """
    <script>
    var meta1 = document.createElement('meta');
    meta1.httpEquiv = "X-Content-Type-Options";
    meta1.content = "nosniff";
    document.getElementsByTagName('head')[0].appendChild(meta1);

    var meta2 = document.createElement('meta');
    meta2.name = "referrer";
    meta2.content = "no-referrer";
    document.getElementsByTagName('head')[0].appendChild(meta2);
    </script>
    """,
    height=0,
)

ui.setup_style()

# --- IDENTITY GATE ---
auth_result = auth_flow.ensure_identity_session()
if auth_result.status == "STOP":
    login_view.render_auth_screen()
    st.stop()

try:
    import sentry_sdk
    if sentry_sdk.get_client().is_active():
        sentry_sdk.set_user({"id": auth_result.principal})
except (ImportError, AttributeError):
    pass

actor = session_manager.get_actor()
cache = session_manager.get_cache()

with st.sidebar:
    st.markdown("### 🏠 VR Homes Infra")
    st.caption(f"Signed in as `{auth_result.principal}`")
    st.caption(f"Session: {session_manager.current_phase().value.replace('_', ' ')}")
    if st.button("Logout", key="logout_btn", type="secondary"):
        session_manager.logout()

# --- STARTUP GATE ---
startup = bootstrap.run_startup(actor, cache, has_identity=True)

if startup.status == "LOADING":
    ui.show_loading_overlay("Loading your profile...")
    st.stop()

if startup.status == "ERROR":
    if ui.render_error_panel("Unable to start the application", startup.error):
        bootstrap.retry_startup(cache)
        st.rerun()
    st.stop()

if startup.view == "PROFILE_SETUP":
    profile_setup_view.render_profile_setup()
    st.stop()

# --- ROLE ROUTER ---
is_admin = bool(cache.peek(QueryKey.IS_ADMIN).data)
user_profile = cache.peek(QueryKey.CURRENT_USER_PROFILE).data

if rbac_policy.select_dashboard(is_admin) == "ADMIN":
    admin_view.render_admin_dashboard(is_admin=is_admin)
else:
    agent_view.render_agent_dashboard(user_profile)
