"""Role routing and client-side action checks. The actor remains the authority on access."""

import logging
from typing import Literal, Optional

log = logging.getLogger(__name__)

Dashboard = Literal["ADMIN", "AGENT"]

ADMIN_ACTIONS = {"APPROVE_AGENT", "REJECT_AGENT", "EXPORT_REPORTS", "VIEW_ALL_RECORDS"}
AGENT_ACTIONS = {"MANAGE_OWN_RECORDS"}


def select_dashboard(is_admin: Optional[bool]) -> Dashboard:
    return "ADMIN" if is_admin else "AGENT"


def enforce(is_admin: Optional[bool], action: str, principal: Optional[str] = None) -> bool:
    """
    Evaluates if the caller may perform the action.
    Returns True if authorized, False otherwise.
    """
    if is_admin:
        authorized = action in ADMIN_ACTIONS or action in AGENT_ACTIONS
    else:
        authorized = action in AGENT_ACTIONS

    if not authorized:
        log.warning(f"Action {action} denied for principal {principal or 'unknown'} (admin={bool(is_admin)})")
    return authorized
