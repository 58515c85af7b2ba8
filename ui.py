import html

import streamlit as st

from use_cases.approval_status import ApprovalStatus

_BADGE_COLORS = {
    ApprovalStatus.PENDING: ("#7a5b00", "#fff4cc"),
    ApprovalStatus.APPROVED: ("#0f5132", "#d1e7dd"),
    ApprovalStatus.REJECTED: ("#842029", "#f8d7da"),
}


def setup_style():
    st.markdown("""
    <style>
        :root {
            --crm-accent: #1f6feb;
            --crm-card-bg: rgba(31, 111, 235, 0.06);
            --crm-card-border: rgba(31, 111, 235, 0.22);
            --crm-text-soft: rgba(49, 51, 63, 0.65);
        }

        .crm-card {
            background: var(--crm-card-bg);
            border: 1px solid var(--crm-card-border);
            border-radius: 14px;
            padding: 16px 18px;
            margin-bottom: 12px;
        }

        .crm-kpi-label {
            font-size: 0.82rem;
            color: var(--crm-text-soft);
            text-transform: uppercase;
            letter-spacing: 0.04em;
        }

        .crm-kpi-value {
            font-size: 1.9rem;
            font-weight: 700;
        }

        .crm-badge {
            display: inline-block;
            border-radius: 999px;
            padding: 2px 10px;
            font-size: 0.78rem;
            font-weight: 600;
        }

        .crm-loading {
            display: flex;
            align-items: center;
            gap: 12px;
            padding: 28px 0;
            color: var(--crm-text-soft);
        }

        .crm-loading-orb {
            width: 18px;
            height: 18px;
            border-radius: 50%;
            border: 3px solid var(--crm-card-border);
            border-top-color: var(--crm-accent);
            animation: crm-spin 0.9s linear infinite;
        }

        @keyframes crm-spin {
            to { transform: rotate(360deg); }
        }
    </style>
    """, unsafe_allow_html=True)


def show_loading_overlay(message="Loading..."):
    st.markdown(
        f"""
        <div class="crm-loading">
          <div class="crm-loading-orb"></div>
          <div>{html.escape(message)}</div>
        </div>
        """,
        unsafe_allow_html=True
    )


def status_badge(status: ApprovalStatus) -> str:
    fg, bg = _BADGE_COLORS.get(status, _BADGE_COLORS[ApprovalStatus.PENDING])
    label = status.value.capitalize()
    return f'<span class="crm-badge" style="color:{fg};background:{bg}">{label}</span>'


def render_kpis(items):
    """Renders (label, value) pairs as a row of cards."""
    cols = st.columns(len(items))
    for col, (label, value) in zip(cols, items):
        with col:
            st.markdown(f'''
            <div class="crm-card">
                <div class="crm-kpi-label">{html.escape(label)}</div>
                <div class="crm-kpi-value">{value}</div>
            </div>
            ''', unsafe_allow_html=True)


def render_error_panel(title: str, error) -> bool:
    """Shows the error and a Retry button; returns True when Retry was pressed."""
    st.error(f"**{title}**\n\n{error or 'Unknown error'}")
    return st.button("Retry", key=f"retry_{title}", type="primary")
