from __future__ import annotations

import pytest

from parcelsync.domain.model import UpdateKind, UpdateOutcome, is_open
from tests.helpers.shipments import make_shipment


@pytest.mark.parametrize(
    ("status", "expected"),
    [("Cancelled", False), ("Delivered", False), ("Booked", True), ("Pending", True), (None, True)],
)
def test_is_open(status: str | None, expected: bool) -> None:  # noqa: FBT001
    assert is_open(status) is expected
    assert make_shipment(status=status).is_open is expected


def test_update_outcome_constructors() -> None:
    record = make_shipment()

    updated = UpdateOutcome.updated("Booked", record)
    unchanged = UpdateOutcome.unchanged("Booked")
    missing = UpdateOutcome.not_found()

    assert (updated.kind, updated.previous_status, updated.record) == (
        UpdateKind.UPDATED,
        "Booked",
        record,
    )
    assert unchanged.kind is UpdateKind.UNCHANGED
    assert unchanged.record is None
    assert missing.kind is UpdateKind.NOT_FOUND


def test_repr_names_tracking_number() -> None:
    assert "KI100" in repr(make_shipment("KI100"))
