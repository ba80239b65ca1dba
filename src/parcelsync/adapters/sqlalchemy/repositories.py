"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, cast

from sqlalchemy import CursorResult, func, literal, or_, select, update

from parcelsync.adapters.sqlalchemy.mappings import UTCDateTime, shipment_table
from parcelsync.domain.model import (
    PICKED_UP_STATUS,
    TERMINAL_STATUSES,
    ShipmentRecord,
    UpdateOutcome,
)
from parcelsync.domain.ports.persistence import ShipmentStoreError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

# Compare-and-set attempts before giving up on a record another writer keeps moving.
MAX_WRITE_ATTEMPTS: Final[int] = 3


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class SqlAlchemyShipmentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ShipmentRecord) -> None:
        self.session.add(entity)

    def get(self, tracking_number: str) -> ShipmentRecord | None:
        stmt = select(ShipmentRecord).where(shipment_table.c.tracking_number == tracking_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def load_open(self) -> list[ShipmentRecord]:
        status = shipment_table.c.status
        stmt = (
            select(ShipmentRecord)
            .where(or_(status.is_(None), status.not_in(sorted(TERMINAL_STATUSES))))
            .order_by(shipment_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def update_if_changed(
        self,
        tracking_number: str,
        new_status: str,
        activity_at: datetime,
        *,
        now: datetime | None = None,
    ) -> UpdateOutcome:
        """Move one shipment to ``new_status`` with a conditional write.

        The UPDATE only matches while the row still holds the status read just
        before it, so a concurrent writer can never be overwritten with a stale
        ``previous_status``. ``picking_time`` is only ever filled through
        ``COALESCE`` and therefore keeps its first value.
        """

        activity = _as_utc(activity_at)
        written_at = _as_utc(now) if now is not None else datetime.now(UTC)

        for _attempt in range(MAX_WRITE_ATTEMPTS):
            current = self.session.execute(
                select(shipment_table.c.id, shipment_table.c.status).where(
                    shipment_table.c.tracking_number == tracking_number
                )
            ).one_or_none()
            if current is None:
                return UpdateOutcome.not_found()
            if current.status == new_status:
                return UpdateOutcome.unchanged(current.status)

            values: dict[str, object] = {
                "status": new_status,
                "last_activity": activity,
                "updated_at": written_at,
            }
            if new_status == PICKED_UP_STATUS:
                values["picking_time"] = func.coalesce(
                    shipment_table.c.picking_time,
                    literal(activity, UTCDateTime()),
                )

            stmt = (
                update(shipment_table)
                .where(shipment_table.c.id == current.id)
                .where(shipment_table.c.status.is_not_distinct_from(current.status))
                .values(values)
            )
            result = cast("CursorResult[object]", self.session.execute(stmt))
            if result.rowcount == 1:
                record = self.session.get(ShipmentRecord, current.id, populate_existing=True)
                if record is None:
                    return UpdateOutcome.not_found()
                return UpdateOutcome.updated(current.status, record)

        raise ShipmentStoreError(
            f"Shipment {tracking_number} changed concurrently {MAX_WRITE_ATTEMPTS} times"
        )
