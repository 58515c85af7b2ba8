import streamlit as st

from services import agent_service
from utils import session_manager


def render_profile_setup():
    st.header("Complete Your Profile")
    st.caption("Please provide your details to continue")

    with st.form("profile_setup_form"):
        name = st.text_input("Full Name")
        mobile = st.text_input("Mobile Number")
        email = st.text_input("Email Address")
        submitted = st.form_submit_button("Save Profile", type="primary")

    if submitted:
        result = agent_service.save_profile(
            session_manager.get_actor(),
            session_manager.get_cache(),
            name,
            email,
            mobile,
        )
        if result.ok:
            st.success("Profile saved")
            st.rerun()
        else:
            st.error(result.error or "Failed to save profile")
