"""Application layer contracts for orchestrating high-level flows."""

from .agent_gate import AgentGateResult, AgentGateView, evaluate_agent_gate, run_agent_gate
from .approval_status import ApprovalStatus, UnrecognizedApprovalStatusError, normalize_approval_status
from .auth_flow import AuthFlowResult, AuthFlowStatus, ensure_identity_session
from .bootstrap import StartupResult, StartupStatus, StartupView, evaluate_startup_gate, retry_startup, run_startup
from .session_models import AgentProfile, IdentitySession, SessionPhase, UserProfile, derive_session_phase

__all__ = [
    "AgentGateResult",
    "AgentGateView",
    "AgentProfile",
    "ApprovalStatus",
    "AuthFlowResult",
    "AuthFlowStatus",
    "IdentitySession",
    "SessionPhase",
    "StartupResult",
    "StartupStatus",
    "StartupView",
    "UnrecognizedApprovalStatusError",
    "UserProfile",
    "derive_session_phase",
    "ensure_identity_session",
    "evaluate_agent_gate",
    "evaluate_startup_gate",
    "normalize_approval_status",
    "retry_startup",
    "run_agent_gate",
    "run_startup",
]
