"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from use_cases.approval_status import ApprovalStatus, normalize_approval_status


@dataclass(frozen=True)
class IdentitySession:
    principal: str
    token: str


@dataclass(frozen=True)
class UserProfile:
    name: str
    email: str
    mobile: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UserProfile":
        return cls(
            name=str(payload.get("name", "")),
            email=str(payload.get("email", "")),
            mobile=str(payload.get("mobile", "")),
        )


@dataclass(frozen=True)
class AgentProfile:
    name: str
    email: str
    mobile: str
    status: ApprovalStatus
    principal: str = ""
    face_image: bytes = b""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AgentProfile":
        return cls(
            name=str(payload.get("name", "")),
            email=str(payload.get("email", "")),
            mobile=str(payload.get("mobile", "")),
            status=normalize_approval_status(payload.get("status")),
            principal=str(payload.get("principal", "")),
            face_image=payload.get("faceEmbeddings") or b"",
        )


@dataclass(frozen=True)
class AgentLoginInfo:
    mobile: str
    last_login_ns: int
    is_active: bool


class SessionPhase(str, Enum):
    ANONYMOUS = "anonymous"
    IDENTIFIED = "identified"
    PROFILED = "profiled"
    APPROVED = "approved"
    FACE_VERIFIED = "face_verified"


def derive_session_phase(
    has_identity: bool,
    has_profile: bool,
    approval_status: Optional[ApprovalStatus],
    is_face_logged_in: bool,
) -> SessionPhase:
    """Each phase requires every earlier one; a later flag alone never advances the phase."""
    if not has_identity:
        return SessionPhase.ANONYMOUS
    if not has_profile:
        return SessionPhase.IDENTIFIED
    if approval_status != ApprovalStatus.APPROVED:
        return SessionPhase.PROFILED
    if not is_face_logged_in:
        return SessionPhase.APPROVED
    return SessionPhase.FACE_VERIFIED
