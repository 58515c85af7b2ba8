from datetime import datetime, time as dt_time

import pandas as pd
import streamlit as st

import ui
from infrastructure.query_cache import QueryKey
from services import crm_service, export_service
from services.crm_service import LEAD_REQUIREMENT_LABELS, LEAD_STATUS_LABELS, LeadRequirement, LeadStatus, Requirement
from use_cases import agent_gate
from use_cases.approval_status import ApprovalStatus
from utils import session_manager
from views import camera_view, login_view


def _load_failed(result, what, cache, key):
    if not result.is_error:
        return False
    if ui.render_error_panel(f"Failed to load {what}", result.error):
        cache.invalidate(key)
        st.rerun()
    return True


def _render_gate_notice(gate):
    if gate.approval_status == ApprovalStatus.REJECTED:
        st.error(
            "**Registration Rejected**\n\n"
            "Your agent registration has been rejected. Please contact the admin for details."
        )
    else:
        st.warning(
            "**Approval Pending**\n\n"
            "Your agent registration is pending admin approval. "
            "You will be able to access the dashboard once approved."
        )


def _render_profile_tab(user_profile, agent_profile):
    c1, c2 = st.columns([3, 1])
    with c1:
        st.markdown(f"**Name:** {agent_profile.name}")
        st.markdown(f"**Mobile:** {agent_profile.mobile}")
        st.markdown(f"**Email:** {agent_profile.email}")
        st.markdown(f"**Status:** {ui.status_badge(agent_profile.status)}", unsafe_allow_html=True)
        if user_profile is not None and user_profile.mobile != agent_profile.mobile:
            st.caption(f"Contact mobile on your account: {user_profile.mobile}")
    with c2:
        if agent_profile.face_image:
            st.image(agent_profile.face_image, caption="Registered face", width=140)


def _render_customers_tab(actor, cache, mobile):
    result = crm_service.customers_by_agent(actor, cache, mobile)
    if _load_failed(result, "customers", cache, QueryKey.CUSTOMERS_BY_AGENT):
        return

    with st.expander("➕ Add customer", expanded=False):
        with st.form("agent_add_customer", clear_on_submit=True):
            name = st.text_input("Customer name *")
            customer_mobile = st.text_input("Mobile *")
            email = st.text_input("Email")
            requirement = st.selectbox("Requirement", list(Requirement), format_func=lambda r: r.value.replace("_", " "))
            if st.form_submit_button("Add customer", type="primary"):
                added = crm_service.add_customer(actor, cache, name, customer_mobile, email, requirement, mobile)
                if added.ok:
                    st.success("Customer added")
                    st.rerun()
                else:
                    st.error(added.error or "Failed to add customer")

    customers = result.data or []
    if not customers:
        st.info("No customers yet.")
        return
    st.dataframe(
        pd.DataFrame([
            {
                "Name": c.name,
                "Mobile": c.mobile,
                "Email": c.email or "",
                "Requirement": c.requirement.value.replace("_", " "),
                "Follow-up": c.follow_up_status,
                "Created": export_service.format_timestamp(c.created_at),
            }
            for c in customers
        ]),
        use_container_width=True,
        hide_index=True,
    )


def _render_leads_tab(actor, cache, mobile):
    result = crm_service.leads_by_agent(actor, cache, mobile)
    if _load_failed(result, "leads", cache, QueryKey.LEADS_BY_AGENT):
        return

    with st.expander("➕ Add lead", expanded=False):
        st.caption("Remember to add remarks within 8 hours.")
        with st.form("agent_add_lead", clear_on_submit=True):
            name = st.text_input("Lead name *")
            lead_mobile = st.text_input("Mobile *")
            email = st.text_input("Email")
            c1, c2 = st.columns(2)
            status = c1.selectbox("Status", list(LeadStatus), format_func=LEAD_STATUS_LABELS.get)
            requirement = c2.selectbox(
                "Requirement", list(LeadRequirement), format_func=LEAD_REQUIREMENT_LABELS.get
            )
            description = st.text_area("Description")
            remarks = st.text_area("Initial Remarks (Optional)")
            if st.form_submit_button("Add lead", type="primary"):
                added = crm_service.add_lead(
                    actor, cache, name, lead_mobile, email, status, requirement, mobile, description, remarks
                )
                if added.ok:
                    st.success("Lead added")
                    st.rerun()
                else:
                    st.error(added.error or "Failed to add lead")

    leads = result.data or []
    if not leads:
        st.info("No leads yet.")
        return

    overdue = [lead for lead in leads if crm_service.lead_remarks_overdue(lead)]
    if overdue:
        st.warning(f"{len(overdue)} lead(s) still need remarks (8 hour deadline passed).")

    st.dataframe(
        pd.DataFrame([
            {
                "Name": lead.name,
                "Mobile": lead.mobile,
                "Status": LEAD_STATUS_LABELS[lead.status],
                "Requirement": LEAD_REQUIREMENT_LABELS[lead.requirement],
                "Description": lead.description,
                "Remarks": lead.remarks or "No remarks",
                "Created": export_service.format_timestamp(lead.created_at),
            }
            for lead in leads
        ]),
        use_container_width=True,
        hide_index=True,
    )


def _render_follow_ups_tab(actor, cache, mobile):
    result = crm_service.follow_ups_by_agent(actor, cache, mobile)
    if _load_failed(result, "follow-ups", cache, QueryKey.FOLLOW_UPS_BY_AGENT):
        return

    customers = crm_service.customers_by_agent(actor, cache, mobile).data or []
    leads = crm_service.leads_by_agent(actor, cache, mobile).data or []

    with st.expander("➕ Add follow-up", expanded=False):
        follow_up_type = st.radio("Type", ["customer", "lead"], horizontal=True, format_func=str.capitalize)
        pool = customers if follow_up_type == "customer" else leads
        with st.form("agent_add_follow_up", clear_on_submit=True):
            linked = st.selectbox(
                f"Select {follow_up_type.capitalize()}",
                pool,
                format_func=lambda r: f"{r.name} ({r.mobile})",
                index=None,
            )
            c1, c2 = st.columns(2)
            day = c1.date_input("Date")
            at = c2.time_input("Time", value=dt_time(10, 0))
            remarks = st.text_area("Remarks")
            if st.form_submit_button("Add follow-up", type="primary"):
                when_ns = int(datetime.combine(day, at).timestamp() * 1_000_000_000)
                added = crm_service.add_follow_up(
                    actor, cache, linked.mobile if linked else "", follow_up_type, mobile, when_ns, remarks
                )
                if added.ok:
                    st.success("Follow-up scheduled")
                    st.rerun()
                else:
                    st.error(added.error or "Failed to add follow-up")

    follow_ups = result.data or []
    if not follow_ups:
        st.info("No follow-ups scheduled.")
        return

    for f in sorted(follow_ups, key=lambda f: f.follow_up_time):
        overdue = crm_service.is_overdue(f)
        label = f"{'⚠️ ' if overdue else ''}{crm_service.linked_name(f, customers, leads)} · {export_service.format_timestamp(f.follow_up_time)}"
        with st.expander(label, expanded=False):
            st.caption(f"{f.type.capitalize()} · {f.linked_id} · {'Overdue' if overdue else f.status.capitalize()}")
            with st.form(f"update_follow_up_{f.id}"):
                remarks = st.text_area("Remarks", value=f.remarks)
                done = st.checkbox("Completed", value=f.status == "completed")
                if st.form_submit_button("Save"):
                    updated = crm_service.update_follow_up(actor, cache, f.id, remarks, "completed" if done else "pending")
                    if updated.ok:
                        st.rerun()
                    else:
                        st.error(updated.error or "Failed to update follow-up")


def _render_whatsapp_tab(actor, cache, mobile, agent_name):
    customers = crm_service.customers_by_agent(actor, cache, mobile).data or []
    leads = crm_service.leads_by_agent(actor, cache, mobile).data or []
    st.caption("Send messages and make calls to your customers and leads")

    for title, records in (("Customers", customers), ("Leads", leads)):
        st.subheader(title)
        if not records:
            st.info(f"No {title.lower()} yet.")
            continue
        for record in records:
            c_name, c_chat, c_call = st.columns([3, 1, 1])
            c_name.markdown(f"**{record.name}**  \n{record.mobile}")
            c_chat.link_button(
                "WhatsApp",
                crm_service.whatsapp_link(record.mobile, crm_service.greeting(record.name, agent_name)),
                use_container_width=True,
            )
            c_call.link_button("Call", f"tel:{record.mobile}", use_container_width=True)


def render_agent_dashboard(user_profile=None):
    actor = session_manager.get_actor()
    cache = session_manager.get_cache()

    gate = agent_gate.run_agent_gate(actor, cache)

    if gate.view == "LOADING":
        st.caption("⏳ Checking agent status...")
        return

    if gate.view == "ERROR":
        if ui.render_error_panel("Unable to Load Dashboard", gate.error):
            agent_gate.refetch_agent_gate(actor, cache)
            st.rerun()
        return

    if gate.view == "NOT_APPROVED":
        _render_gate_notice(gate)
        return

    if gate.view == "LOGIN_REQUIRED":
        st.subheader("Agent Login Required")
        st.caption("Please complete face verification to access your dashboard")
        login_view.render_login_form()
        camera_view.render_pending_capture()
        return

    agent_profile = gate.agent_profile
    mobile = user_profile.mobile if user_profile is not None else agent_profile.mobile
    display_name = (user_profile.name if user_profile is not None else None) or agent_profile.name or "Agent"

    st.title(f"Welcome, {display_name}!")
    st.caption("Manage your profile, customers, leads, and follow-ups")

    tab_profile, tab_customers, tab_leads, tab_follow_ups, tab_whatsapp = st.tabs(
        ["👤 Profile", "🏠 Customers", "🎯 Leads", "📅 Follow-ups", "💬 WhatsApp"]
    )
    with tab_profile:
        _render_profile_tab(user_profile, agent_profile)
    with tab_customers:
        _render_customers_tab(actor, cache, mobile)
    with tab_leads:
        _render_leads_tab(actor, cache, mobile)
    with tab_follow_ups:
        _render_follow_ups_tab(actor, cache, mobile)
    with tab_whatsapp:
        _render_whatsapp_tab(actor, cache, mobile, display_name)
