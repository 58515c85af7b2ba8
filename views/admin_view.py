import logging

import pandas as pd
import streamlit as st

import ui
from services import agent_service, crm_service, export_service
from infrastructure.query_cache import QueryKey
from services.crm_service import LEAD_REQUIREMENT_LABELS, LEAD_STATUS_LABELS, LeadRequirement, LeadStatus, Requirement
from use_cases import rbac_policy
from utils import session_manager

log = logging.getLogger(__name__)


def _query_data(result, what, cache, key):
    """Shows loading/error states; returns the data or None. Retry invalidates the failed key."""
    if result.is_loading:
        ui.show_loading_overlay(f"Loading {what}...")
        return None
    if result.is_error:
        if ui.render_error_panel(f"Failed to load {what}", result.error):
            cache.invalidate(key)
            st.rerun()
        return None
    return result.data


def _agent_names(agents):
    return {a.mobile: a.name for a in agents or []}


def _render_overview_tab(agents, leads):
    counts = crm_service.overview_counts(agents, leads)
    ui.render_kpis([
        ("Pending agents", counts["pending_agents"]),
        ("Approved agents", counts["approved_agents"]),
        ("Total leads", counts["total_leads"]),
    ])
    ui.render_kpis([(LEAD_STATUS_LABELS[s], counts[f"leads_{s.value}"]) for s in LeadStatus])

    if leads:
        st.subheader("Recent leads")
        recent = sorted(leads, key=lambda lead: lead.created_at, reverse=True)[:10]
        df = pd.DataFrame([
            {
                "Lead": lead.name,
                "Mobile": lead.mobile,
                "Status": LEAD_STATUS_LABELS[lead.status],
                "Agent": _agent_names(agents).get(lead.assigned_agent, "Unknown"),
                "WhatsApp": crm_service.whatsapp_link(lead.mobile, f"Hello {lead.name}, this is VR Homes Infra CRM."),
            }
            for lead in recent
        ])
        st.dataframe(
            df,
            use_container_width=True,
            hide_index=True,
            column_config={"WhatsApp": st.column_config.LinkColumn(display_text="Open chat")},
        )


def _render_pending_tab(actor, cache, agents, is_admin):
    pending = agent_service.pending_agents(agents)
    if not pending:
        st.info("No pending agent registrations.")
    else:
        st.warning(f"Awaiting approval: {len(pending)}")
        _render_pending_agents(actor, cache, pending, is_admin)

    approvals = _query_data(
        agent_service.approvals_by_status(actor, cache, QueryKey.PENDING_AGENTS),
        "identity approvals",
        cache,
        QueryKey.PENDING_AGENTS,
    )
    if approvals:
        st.subheader("Pending identity approvals")
        rows = agent_service.join_approvals(approvals, agents)
        st.dataframe(
            pd.DataFrame([
                {
                    "Principal": row["principal"],
                    "Agent": row["name"] or "Not registered",
                    "Mobile": row["mobile"],
                }
                for row in rows
            ]),
            use_container_width=True,
            hide_index=True,
        )


def _render_pending_agents(actor, cache, pending, is_admin):
    for agent in pending:
        c_info, c_face = st.columns([3, 1])
        with c_info:
            st.markdown(f"**{agent.name}** {ui.status_badge(agent.status)}", unsafe_allow_html=True)
            st.caption(f"{agent.mobile} | {agent.email}")
        with c_face:
            if agent.face_image:
                st.image(agent.face_image, width=96)

        c1, c2 = st.columns(2)
        with c1:
            if st.button("✅ Approve", key=f"approve_{agent.mobile}", use_container_width=True):
                if rbac_policy.enforce(is_admin, "APPROVE_AGENT"):
                    result = agent_service.approve_agent(actor, cache, agent.mobile)
                    if result.ok:
                        st.rerun()
                    st.error(result.error)
                else:
                    st.error("Only admins can approve agents.")
        with c2:
            if st.button("⛔ Reject", key=f"reject_{agent.mobile}", use_container_width=True):
                if rbac_policy.enforce(is_admin, "REJECT_AGENT"):
                    result = agent_service.reject_agent(actor, cache, agent.mobile)
                    if result.ok:
                        st.rerun()
                    st.error(result.error)
                else:
                    st.error("Only admins can reject agents.")
        st.divider()


def _render_agents_tab(actor, cache, agents, is_admin):
    approved = agent_service.approved_agents(agents)
    login_info = _query_data(agent_service.agent_login_times(actor, cache), "login times", cache, QueryKey.AGENT_LOGIN_TIMES) or []

    approved_ids = agent_service.approvals_by_status(actor, cache, QueryKey.APPROVED_AGENTS).data or []
    st.caption(f"Approved identities: {len(approved_ids)}")

    if not approved:
        st.info("No approved agents yet.")
        return

    rows = export_service.agents_report(approved, login_info)
    st.dataframe(
        pd.DataFrame(rows).rename(columns=dict(export_service.AGENT_HEADERS)),
        use_container_width=True,
        hide_index=True,
    )

    if rbac_policy.enforce(is_admin, "EXPORT_REPORTS"):
        payload, filename = export_service.export_csv(rows, export_service.AGENT_HEADERS, "agents-report")
        st.download_button("⬇️ Export agents (CSV)", payload, file_name=filename, mime="text/csv")


def _render_customers_tab(actor, cache, agents):
    customers = _query_data(crm_service.all_customers(actor, cache), "customers", cache, QueryKey.ALL_CUSTOMERS)
    if customers is None:
        return

    approved = agent_service.approved_agents(agents)
    names = _agent_names(agents)

    with st.expander("➕ Add customer", expanded=False):
        if not approved:
            st.info("Approve an agent before assigning customers.")
        else:
            with st.form("admin_add_customer", clear_on_submit=True):
                name = st.text_input("Customer name *")
                mobile = st.text_input("Mobile *")
                email = st.text_input("Email")
                requirement = st.selectbox("Requirement", list(Requirement), format_func=lambda r: r.value.replace("_", " "))
                agent = st.selectbox("Assign to agent", approved, format_func=lambda a: f"{a.name} ({a.mobile})")
                if st.form_submit_button("Add customer", type="primary"):
                    result = crm_service.add_customer(actor, cache, name, mobile, email, requirement, agent.mobile)
                    if result.ok:
                        st.success("Customer added")
                        st.rerun()
                    else:
                        st.error(result.error or "Failed to add customer")

    agent_filter = st.selectbox("Agent", ["All"] + sorted(names), format_func=lambda m: names.get(m, m))
    if agent_filter != "All":
        customers = [c for c in customers if c.assigned_agent == agent_filter]

    if not customers:
        st.info("No customers found.")
        return

    st.dataframe(
        pd.DataFrame([
            {
                "Name": c.name,
                "Mobile": c.mobile,
                "Email": c.email or "",
                "Requirement": c.requirement.value.replace("_", " "),
                "Agent": names.get(c.assigned_agent, "Unknown"),
                "Follow-up": c.follow_up_status,
                "Created": export_service.format_timestamp(c.created_at),
            }
            for c in customers
        ]),
        use_container_width=True,
        hide_index=True,
    )


def _render_leads_tab(actor, cache, agents, is_admin):
    leads = _query_data(crm_service.all_leads(actor, cache), "leads", cache, QueryKey.ALL_LEADS)
    if leads is None:
        return

    approved = agent_service.approved_agents(agents)
    names = _agent_names(agents)

    with st.expander("➕ Add lead", expanded=False):
        if not approved:
            st.info("Approve an agent before assigning leads.")
        else:
            with st.form("admin_add_lead", clear_on_submit=True):
                name = st.text_input("Lead name *")
                mobile = st.text_input("Mobile *")
                email = st.text_input("Email")
                c1, c2 = st.columns(2)
                status = c1.selectbox("Status", list(LeadStatus), format_func=LEAD_STATUS_LABELS.get)
                requirement = c2.selectbox("Requirement", list(LeadRequirement), format_func=LEAD_REQUIREMENT_LABELS.get)
                agent = st.selectbox("Assign to agent", approved, format_func=lambda a: f"{a.name} ({a.mobile})")
                description = st.text_area("Description")
                remarks = st.text_area("Remarks (Optional)")
                if st.form_submit_button("Add lead", type="primary"):
                    result = crm_service.add_lead(
                        actor, cache, name, mobile, email, status, requirement, agent.mobile, description, remarks
                    )
                    if result.ok:
                        st.success("Lead added")
                        st.rerun()
                    else:
                        st.error(result.error or "Failed to add lead")

    c_agent, c_status = st.columns(2)
    agent_filter = c_agent.selectbox("Agent", ["All"] + sorted(names), format_func=lambda m: names.get(m, m), key="lead_agent_filter")
    status_filter = c_status.selectbox(
        "Status", ["All"] + list(LeadStatus), format_func=lambda s: s if s == "All" else LEAD_STATUS_LABELS[s], key="lead_status_filter"
    )
    filtered = crm_service.filter_leads(
        leads,
        agent_mobile=None if agent_filter == "All" else agent_filter,
        status=None if status_filter == "All" else status_filter,
    )

    if not filtered:
        st.info("No leads match the filters.")
        return

    rows = export_service.leads_report(filtered, agents)
    st.dataframe(
        pd.DataFrame(rows).rename(columns=dict(export_service.LEAD_HEADERS)),
        use_container_width=True,
        hide_index=True,
    )

    if rbac_policy.enforce(is_admin, "EXPORT_REPORTS"):
        payload, filename = export_service.export_csv(rows, export_service.LEAD_HEADERS, "leads-report")
        st.download_button("⬇️ Export leads (CSV)", payload, file_name=filename, mime="text/csv")


def _render_follow_ups_tab(actor, cache, agents):
    follow_ups = _query_data(crm_service.all_follow_ups(actor, cache), "follow-ups", cache, QueryKey.ALL_FOLLOW_UPS)
    if follow_ups is None:
        return
    if not follow_ups:
        st.info("No follow-ups scheduled.")
        return

    customers = crm_service.all_customers(actor, cache).data
    leads = crm_service.all_leads(actor, cache).data
    names = _agent_names(agents)
    overdue = [f for f in follow_ups if crm_service.is_overdue(f)]
    if overdue:
        st.warning(f"Overdue follow-ups: {len(overdue)}")

    st.dataframe(
        pd.DataFrame([
            {
                "Type": f.type.capitalize(),
                "Contact": crm_service.linked_name(f, customers, leads),
                "Mobile": f.linked_id,
                "Agent": names.get(f.agent, f.agent),
                "Scheduled": export_service.format_timestamp(f.follow_up_time),
                "Status": "Overdue" if crm_service.is_overdue(f) else f.status.capitalize(),
                "Remarks": f.remarks,
            }
            for f in sorted(follow_ups, key=lambda f: f.follow_up_time)
        ]),
        use_container_width=True,
        hide_index=True,
    )


def render_admin_dashboard(is_admin=True):
    st.header("⚙️ Admin Dashboard")

    actor = session_manager.get_actor()
    cache = session_manager.get_cache()

    if not rbac_policy.enforce(is_admin, "VIEW_ALL_RECORDS"):
        st.error("Admin access required.")
        return

    agents = _query_data(agent_service.all_agent_profiles(actor, cache), "agents", cache, QueryKey.ALL_AGENT_PROFILES)
    if agents is None:
        return
    leads = crm_service.all_leads(actor, cache).data or []

    tab_overview, tab_pending, tab_agents, tab_customers, tab_leads, tab_follow_ups = st.tabs(
        ["📊 Overview", "🕒 Pending", "👥 Agents", "🏠 Customers", "🎯 Leads", "📅 Follow-ups"]
    )

    with tab_overview:
        _render_overview_tab(agents, leads)
    with tab_pending:
        _render_pending_tab(actor, cache, agents, is_admin)
    with tab_agents:
        _render_agents_tab(actor, cache, agents, is_admin)
    with tab_customers:
        _render_customers_tab(actor, cache, agents)
    with tab_leads:
        _render_leads_tab(actor, cache, agents, is_admin)
    with tab_follow_ups:
        _render_follow_ups_tab(actor, cache, agents)
