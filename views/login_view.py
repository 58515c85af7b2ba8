import streamlit as st

import auth
from services import agent_service
from use_cases.face_capture import FaceFlowError, missing_capture_message, user_message
from utils import session_manager
from views import camera_view


def _show_failure(result, flow):
    kind = result.error_kind or FaceFlowError.UNKNOWN
    st.error(user_message(kind, flow, result.error))


def _face_capture_control(flow, label):
    image = camera_view.captured_image(flow)
    if st.button("📷 Recapture face image" if image else f"📷 {label}", key=f"open_camera_{flow}", use_container_width=True):
        camera_view.open_face_capture(flow)
        st.rerun()
    if image is not None:
        st.caption("✓ Face image captured")
    return image


def render_register_form():
    image = _face_capture_control("register", "Capture face for registration")

    with st.form("register_form", clear_on_submit=False):
        name = st.text_input("Full Name", placeholder="Enter your full name")
        mobile = st.text_input("Mobile Number", placeholder="Enter your mobile number")
        email = st.text_input("Email Address", placeholder="Enter your email")
        submitted = st.form_submit_button("Register", type="primary")

    if submitted:
        if image is None:
            st.error(missing_capture_message("register"))
            return
        if not all([name.strip(), mobile.strip(), email.strip()]):
            st.error("Fill in all required fields.")
            return
        with st.spinner("Registering..."):
            result = agent_service.register_agent(
                session_manager.get_actor(),
                session_manager.get_cache(),
                name.strip(),
                mobile.strip(),
                email.strip(),
                image,
            )
        if result.ok:
            camera_view.discard_capture("register")
            st.success("Registration submitted! Please wait for admin approval.")
        else:
            _show_failure(result, "register")


def render_login_form():
    image = _face_capture_control("login", "Capture face for verification")

    if st.button("Login", type="primary", key="agent_login_btn", use_container_width=True):
        if image is None:
            st.error(missing_capture_message("login"))
            return
        with st.spinner("Logging in..."):
            result = agent_service.login_agent(session_manager.get_actor(), session_manager.get_cache(), image)
        if result.ok:
            camera_view.discard_capture("login")
            st.success("Login successful!")
            st.rerun()
        else:
            _show_failure(result, "login")


def render_auth_screen():
    st.title("🏠 VR Homes Infra CRM")
    st.caption("Agent Registration & Login Portal")

    if st.session_state.get("identity") is None:
        st.link_button("🔐 Sign in with Internet Identity", auth.begin_identity_login(), type="secondary")
        st.divider()

    tab_register, tab_login = st.tabs(["Register", "Login"])
    with tab_register:
        render_register_form()
    with tab_login:
        render_login_form()

    camera_view.render_pending_capture()
