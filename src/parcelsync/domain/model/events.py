"""Status change events and the outbound notification payload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from datetime import datetime

    from .shipment import ShipmentRecord

EventSource = Literal["reconciliation", "webhook"]


@dataclass(frozen=True, slots=True)
class StatusChangeEvent:
    tracking_number: str
    order_id: str | None
    consignee_name: str
    previous_status: str | None
    new_status: str
    city_name: str
    cod_amount: float
    picking_time: datetime | None
    activity_at: datetime | None
    source: EventSource = "reconciliation"

    @classmethod
    def from_record(
        cls,
        record: ShipmentRecord,
        *,
        previous_status: str | None,
        city_name: str,
        source: EventSource = "reconciliation",
    ) -> StatusChangeEvent:
        if record.tracking_number is None or record.status is None:
            raise ValueError(f"Cannot build a status change event from {record!r}")
        return cls(
            tracking_number=record.tracking_number,
            order_id=record.order_id,
            consignee_name=record.consignee_name,
            previous_status=previous_status,
            new_status=record.status,
            city_name=city_name,
            cod_amount=record.cod_amount,
            picking_time=record.picking_time,
            activity_at=record.last_activity,
            source=source,
        )


@dataclass(frozen=True, slots=True)
class StatusNotification:
    """Payload handed to a notification sink."""

    order_id: str | None
    status: str
    consignee_name: str
    cod_amount: int
    tracking_number: str
    pickup_date: str | None
    city: str
    subject: str
