from __future__ import annotations

from datetime import UTC, datetime

import pytest

from parcelsync.domain.model import StatusChangeEvent, subject_for_status
from parcelsync.domain.model.statuses import DEFAULT_SUBJECT, PROBLEM_SUBJECT
from parcelsync.domain.notifications import NotificationDispatcher, build_notification
from parcelsync.domain.ports.notifications import DeliveryError
from tests.helpers.shipments import PKT, RecordingSink, make_shipment


def _event(status: str = "Shipment Picked") -> StatusChangeEvent:
    record = make_shipment(
        "KI100",
        status,
        picking_time=datetime(2024, 1, 1, 5, tzinfo=UTC),
        cod_amount=1999.99,
    )
    return StatusChangeEvent.from_record(record, previous_status="Booked", city_name="Lahore")


@pytest.mark.parametrize(
    ("status", "brand", "expected"),
    [
        ("Pending", None, PROBLEM_SUBJECT),
        ("Being Return", "Zebtan Collection", "Delivery Failed - Zebtan Collection"),
        ("Delivered", "Zebtan Collection", DEFAULT_SUBJECT),
        ("Some New Courier Status", None, DEFAULT_SUBJECT),
    ],
)
def test_subject_for_status(status: str, brand: str | None, expected: str) -> None:
    assert subject_for_status(status, brand=brand) == expected


def test_build_notification_renders_payload_in_courier_time() -> None:
    notification = build_notification(_event(), display_timezone=PKT)

    assert notification.pickup_date == "2024-01-01 10:00:00"
    assert notification.cod_amount == 1999
    assert notification.status == "Shipment Picked"
    assert notification.city == "Lahore"
    assert notification.tracking_number == "KI100"


def test_event_requires_tracking_number() -> None:
    with pytest.raises(ValueError, match="Cannot build"):
        StatusChangeEvent.from_record(
            make_shipment(None, "Pending"), previous_status="Booked", city_name="Lahore"
        )


def test_dispatcher_submits_to_sink() -> None:
    sink = RecordingSink()
    dispatcher = NotificationDispatcher(sink, brand="Zebtan Collection")

    notification = dispatcher.send(_event(status="Pending"))

    assert sink.notifications == [notification]
    assert notification.subject == "Delivery Failed - Zebtan Collection"


def test_dispatcher_wraps_unexpected_sink_errors() -> None:
    class BrokenSink(RecordingSink):
        def submit(self, notification: object) -> None:  # type: ignore[override]
            raise RuntimeError("boom")

    dispatcher = NotificationDispatcher(BrokenSink())

    with pytest.raises(DeliveryError, match="boom"):
        dispatcher.send(_event())


def test_dispatcher_close_closes_sink() -> None:
    sink = RecordingSink()
    NotificationDispatcher(sink).close()

    assert sink.closed
