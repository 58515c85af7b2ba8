"""Identity gate orchestration (application layer)."""

from dataclasses import dataclass
from typing import Literal, Optional

from utils import session_manager

AuthFlowStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for identity gate orchestration."""

    status: AuthFlowStatus
    reason: str
    principal: Optional[str] = None


def ensure_identity_session() -> AuthFlowResult:
    """Restore or complete the identity sign-in and return a control-flow status."""
    session_manager.init_session_state()
    session_manager.check_and_restore_session()

    identity = session_manager.st.session_state.get("identity")
    if identity is None:
        return AuthFlowResult(status="STOP", reason="identity_required")

    return AuthFlowResult(status="CONTINUE", reason="identified", principal=identity.principal)
