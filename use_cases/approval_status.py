"""Agent approval status model and wire-shape normalization."""

import logging
from enum import Enum
from typing import Any, Mapping

log = logging.getLogger(__name__)


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UnrecognizedApprovalStatusError(ValueError):
    pass


_VARIANTS = {status.value: status for status in ApprovalStatus}


def _describe(value: Any) -> str:
    if isinstance(value, Mapping):
        return f"mapping with keys {sorted(map(str, value.keys()))}"
    return f"{type(value).__name__} {value!r}"[:120]


def normalize_approval_status(value: Any, strict: bool = False) -> ApprovalStatus:
    """
    Returns the canonical status for a value received from the actor.

    Two wire shapes are accepted: a bare variant name ("approved") and a
    tagged object carrying exactly one variant key ({"approved": None}).
    Anything else falls back to PENDING with a warning, or raises
    UnrecognizedApprovalStatusError when strict is set.
    """
    if isinstance(value, ApprovalStatus):
        return value
    if isinstance(value, str):
        status = _VARIANTS.get(value)
        if status is not None:
            return status
    elif isinstance(value, Mapping):
        keys = [k for k in value.keys() if k in _VARIANTS]
        if len(keys) == 1 and len(value) == 1:
            return _VARIANTS[keys[0]]

    if strict:
        raise UnrecognizedApprovalStatusError(f"Unrecognized approval status: {_describe(value)}")
    log.warning(f"Unrecognized approval status ({_describe(value)}), treating as pending")
    return ApprovalStatus.PENDING


def is_pending(value: Any) -> bool:
    return normalize_approval_status(value) == ApprovalStatus.PENDING


def is_approved(value: Any) -> bool:
    return normalize_approval_status(value) == ApprovalStatus.APPROVED


def is_rejected(value: Any) -> bool:
    return normalize_approval_status(value) == ApprovalStatus.REJECTED
