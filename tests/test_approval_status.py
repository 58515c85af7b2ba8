import logging

import pytest

from use_cases.approval_status import (
    ApprovalStatus,
    UnrecognizedApprovalStatusError,
    is_approved,
    is_pending,
    is_rejected,
    normalize_approval_status,
)


@pytest.mark.parametrize("status", list(ApprovalStatus))
def test_bare_and_tagged_shapes_normalize_to_same_variant(status):
    assert normalize_approval_status(status.value) == status
    assert normalize_approval_status({status.value: None}) == status


@pytest.mark.parametrize("status", list(ApprovalStatus))
def test_exactly_one_predicate_holds(status):
    for shape in (status.value, {status.value: None}, status):
        flags = [is_pending(shape), is_approved(shape), is_rejected(shape)]
        assert flags.count(True) == 1


def test_canonical_value_passes_through():
    assert normalize_approval_status(ApprovalStatus.REJECTED) is ApprovalStatus.REJECTED


@pytest.mark.parametrize(
    "value",
    [None, "", "Approved", "banned", 1, True, {}, {"approved": None, "pending": None}, {"unknown": None}],
)
def test_unrecognized_values_fall_back_to_pending(value, caplog):
    with caplog.at_level(logging.WARNING, logger="use_cases.approval_status"):
        assert normalize_approval_status(value) == ApprovalStatus.PENDING
    assert "Unrecognized approval status" in caplog.text


def test_unrecognized_value_raises_in_strict_mode():
    with pytest.raises(UnrecognizedApprovalStatusError):
        normalize_approval_status({"suspended": None}, strict=True)


def test_strict_mode_accepts_known_shapes():
    assert normalize_approval_status({"approved": None}, strict=True) == ApprovalStatus.APPROVED
    assert normalize_approval_status("pending", strict=True) == ApprovalStatus.PENDING


def test_unknown_status_never_reads_as_approved():
    assert not is_approved("APPROVED ")
    assert not is_approved({"approved": None, "rejected": None})
