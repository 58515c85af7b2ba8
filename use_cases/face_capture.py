"""
Face-capture protocol for agent registration and login.

The camera is a scoped resource: started when the capture dialog opens and
stopped on every way out of it. Backend failures arrive as prose; they are
translated into a closed set of kinds in exactly one place.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Literal, Optional, Protocol

log = logging.getLogger(__name__)

FaceFlow = Literal["register", "login"]


class Camera(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


@dataclass(frozen=True)
class CapturedImage:
    """Still frame handed to the actor as the opaque faceEmbeddings buffer."""

    data: bytes
    mime_type: str = "image/jpeg"


@contextmanager
def face_capture_session(camera: Camera) -> Iterator[Camera]:
    camera.start()
    try:
        yield camera
    finally:
        camera.stop()


class FaceFlowError(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    REJECTED = "rejected"
    NOT_APPROVED = "not_approved"
    FACE_MISMATCH = "face_mismatch"
    FACE_REQUIRED = "face_required"
    MOBILE_TAKEN = "mobile_taken"
    UNKNOWN = "unknown"


# Checked in order; the first matching fragment wins.
_LOGIN_PATTERNS = (
    ("pending", FaceFlowError.PENDING_APPROVAL),
    ("rejected", FaceFlowError.REJECTED),
    ("Face verification failed", FaceFlowError.FACE_MISMATCH),
    ("not approved", FaceFlowError.NOT_APPROVED),
    ("mandatory", FaceFlowError.FACE_REQUIRED),
)

_REGISTER_PATTERNS = (
    ("Mobile number already registered", FaceFlowError.MOBILE_TAKEN),
    ("mandatory", FaceFlowError.FACE_REQUIRED),
)

_MESSAGES = {
    "login": {
        FaceFlowError.PENDING_APPROVAL: "Your registration is pending admin approval",
        FaceFlowError.REJECTED: "Your registration has been rejected",
        FaceFlowError.FACE_MISMATCH: "Face verification failed. Please try again.",
        FaceFlowError.NOT_APPROVED: "Your account is not approved. Please contact admin.",
        FaceFlowError.FACE_REQUIRED: "Face verification is required for login",
    },
    "register": {
        FaceFlowError.MOBILE_TAKEN: "This mobile number is already registered",
        FaceFlowError.FACE_REQUIRED: "Face capture is required for registration",
    },
}

_FALLBACK = {"login": "Login failed", "register": "Registration failed"}

# Shown before submit when no image was captured.
_MISSING_CAPTURE = {
    "login": "Face verification is mandatory for login",
    "register": "Face capture is mandatory for registration",
}


def classify_actor_error(message: Optional[str], flow: FaceFlow) -> FaceFlowError:
    text = message or ""
    patterns = _LOGIN_PATTERNS if flow == "login" else _REGISTER_PATTERNS
    for fragment, kind in patterns:
        if fragment in text:
            return kind
    return FaceFlowError.UNKNOWN


def missing_capture_message(flow: FaceFlow) -> str:
    return _MISSING_CAPTURE[flow]


def user_message(kind: FaceFlowError, flow: FaceFlow, raw: Optional[str] = None) -> str:
    if kind == FaceFlowError.UNKNOWN:
        return raw or _FALLBACK[flow]
    message = _MESSAGES[flow].get(kind)
    if message is None:
        log.warning(f"No {flow} message for error kind {kind.value}")
        return raw or _FALLBACK[flow]
    return message
