"""Agent dashboard access gate, evaluated after the startup gate routes to the agent view."""

from dataclasses import dataclass
from typing import Any, Literal, Optional

from infrastructure.query_cache import QueryCache, QueryResult
from services import agent_service
from use_cases.approval_status import ApprovalStatus, normalize_approval_status

AgentGateView = Literal["LOADING", "ERROR", "NOT_APPROVED", "LOGIN_REQUIRED", "DASHBOARD"]


@dataclass(frozen=True)
class AgentGateResult:
    view: AgentGateView
    approval_status: Optional[ApprovalStatus] = None
    error: Optional[BaseException] = None
    agent_profile: Any = None


def status_from_approval(value: Any) -> ApprovalStatus:
    # isCallerApproved answers with a bare boolean; False carries no pending/rejected detail.
    if isinstance(value, bool):
        return ApprovalStatus.APPROVED if value else ApprovalStatus.PENDING
    return normalize_approval_status(value)


def evaluate_agent_gate(approval_query: QueryResult, agent_profile_query: QueryResult) -> AgentGateResult:
    if approval_query.is_loading or agent_profile_query.is_loading:
        return AgentGateResult(view="LOADING")

    if approval_query.is_error or agent_profile_query.is_error:
        return AgentGateResult(view="ERROR", error=approval_query.error or agent_profile_query.error)

    status = status_from_approval(approval_query.data)
    if status != ApprovalStatus.APPROVED:
        return AgentGateResult(view="NOT_APPROVED", approval_status=status)

    # A missing agent profile means no face-verified login in this session.
    if agent_profile_query.data is None:
        return AgentGateResult(view="LOGIN_REQUIRED", approval_status=status)

    return AgentGateResult(view="DASHBOARD", approval_status=status, agent_profile=agent_profile_query.data)


def run_agent_gate(actor, cache: QueryCache) -> AgentGateResult:
    return evaluate_agent_gate(
        agent_service.caller_approval(actor, cache),
        agent_service.agent_profile_by_caller(actor, cache),
    )


def refetch_agent_gate(actor, cache: QueryCache) -> AgentGateResult:
    """Re-runs both gate queries directly instead of invalidating the cache."""
    return evaluate_agent_gate(
        agent_service.caller_approval(actor, cache, force=True),
        agent_service.agent_profile_by_caller(actor, cache, force=True),
    )
