"""Shipment records and store update outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from .statuses import BOOKED_STATUS, is_open


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False)
class ShipmentRecord:
    """A booked shipment as stored locally.

    ``tracking_number`` is assigned by the courier at booking time and is the only
    key reconciliation matches on. ``picking_time`` is written once, on the first
    transition to the picked-up status, and never afterwards.
    """

    consignee_name: str
    consignee_phone: str = ""
    consignee_address: str = ""
    destination_city: str | None = None
    tracking_number: str | None = None
    order_id: str | None = None
    status: str | None = BOOKED_STATUS
    cod_amount: float = 0.0
    picking_time: datetime | None = None
    last_activity: datetime | None = None
    is_cancelled: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    id: int | None = None

    @property
    def is_open(self) -> bool:
        return is_open(self.status)

    def __repr__(self) -> str:
        return (
            f"ShipmentRecord(id={self.id!r}, tracking_number={self.tracking_number!r}, "
            f"status={self.status!r})"
        )


class UpdateKind(StrEnum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class UpdateOutcome:
    """Result of a conditional status write."""

    kind: UpdateKind
    previous_status: str | None = None
    record: ShipmentRecord | None = None

    @classmethod
    def updated(cls, previous_status: str | None, record: ShipmentRecord) -> UpdateOutcome:
        return cls(UpdateKind.UPDATED, previous_status, record)

    @classmethod
    def unchanged(cls, status: str | None) -> UpdateOutcome:
        return cls(UpdateKind.UNCHANGED, status)

    @classmethod
    def not_found(cls) -> UpdateOutcome:
        return cls(UpdateKind.NOT_FOUND)
