"""CSV report export for the admin dashboard."""

import csv
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from services.crm_service import Lead
from use_cases.session_models import AgentLoginInfo, AgentProfile

log = logging.getLogger(__name__)

BOM = "\ufeff"
CRLF = "\r\n"

AGENT_HEADERS = (
    ("name", "Name"),
    ("mobile", "Mobile"),
    ("email", "Email"),
    ("approvalStatus", "Approval Status"),
    ("lastLogin", "Last Login"),
    ("status", "Status"),
)

LEAD_HEADERS = (
    ("name", "Lead Name"),
    ("mobile", "Mobile"),
    ("email", "Email"),
    ("status", "Status"),
    ("requirement", "Requirement"),
    ("description", "Description"),
    ("assignedAgentMobile", "Assigned Agent Mobile"),
    ("assignedAgentName", "Assigned Agent Name"),
    ("remarks", "Remarks"),
    ("createdAt", "Created At"),
)


def to_csv(rows: Sequence[Dict[str, Any]], headers: Sequence[Tuple[str, str]]) -> str:
    """
    RFC 4180 CSV: fields with a comma, quote, CR or LF are quoted, embedded
    quotes doubled, None written as empty, rows joined by CRLF without a
    trailing separator.
    """
    keys = [key for key, _ in headers]
    labels = [label for _, label in headers]
    df = pd.DataFrame([[row.get(k) for k in keys] for row in rows], columns=labels, dtype="object")
    text = df.to_csv(index=False, lineterminator=CRLF, quoting=csv.QUOTE_MINIMAL, na_rep="")
    if text.endswith(CRLF):
        text = text[: -len(CRLF)]
    return text


def with_bom(text: str) -> str:
    return BOM + text


def report_filename(report_type: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{report_type}-{today:%Y-%m-%d}.csv"


def format_timestamp(ns: Optional[int]) -> str:
    """Actor timestamps are nanoseconds since the epoch."""
    if not ns:
        return "Never"
    return datetime.fromtimestamp(ns / 1_000_000_000).strftime("%Y-%m-%d %H:%M:%S")


def agents_report(agents: List[AgentProfile], login_info: List[AgentLoginInfo]) -> List[Dict[str, Any]]:
    by_mobile = {info.mobile: info for info in login_info or []}
    rows = []
    for agent in agents:
        info = by_mobile.get(agent.mobile)
        rows.append({
            "name": agent.name,
            "mobile": agent.mobile,
            "email": agent.email,
            "approvalStatus": agent.status.value.capitalize(),
            "lastLogin": format_timestamp(info.last_login_ns) if info else "Never",
            "status": "Active" if info and info.is_active else "Inactive",
        })
    return rows


def leads_report(leads: List[Lead], agents: List[AgentProfile]) -> List[Dict[str, Any]]:
    names = {agent.mobile: agent.name for agent in agents or []}
    return [
        {
            "name": lead.name,
            "mobile": lead.mobile,
            "email": lead.email or "",
            "status": lead.status.value,
            "requirement": lead.requirement.value,
            "description": lead.description,
            "assignedAgentMobile": lead.assigned_agent,
            "assignedAgentName": names.get(lead.assigned_agent, "Unknown"),
            "remarks": lead.remarks or "",
            "createdAt": format_timestamp(lead.created_at),
        }
        for lead in leads
    ]


def export_csv(rows: Sequence[Dict[str, Any]], headers: Sequence[Tuple[str, str]], report_type: str) -> Tuple[bytes, str]:
    """Returns the BOM-prefixed UTF-8 payload and its dated filename."""
    filename = report_filename(report_type)
    log.info(f"Exporting {len(rows)} rows to {filename}")
    return with_bom(to_csv(rows, headers)).encode("utf-8"), filename
