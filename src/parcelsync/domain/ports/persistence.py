"""Ports for persisting shipment records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from parcelsync.domain.model import ShipmentRecord, UpdateOutcome


class ShipmentStoreError(RuntimeError):
    """Raised when the shipment store cannot complete an operation."""


@runtime_checkable
class ShipmentRepository(Protocol):
    """Session-scoped persistence contract for shipments."""

    def add(self, entity: ShipmentRecord) -> None: ...

    def get(self, tracking_number: str) -> ShipmentRecord | None: ...

    def load_open(self) -> list[ShipmentRecord]: ...

    def update_if_changed(
        self,
        tracking_number: str,
        new_status: str,
        activity_at: datetime,
        *,
        now: datetime | None = None,
    ) -> UpdateOutcome: ...


@runtime_checkable
class ShipmentStore(Protocol):
    """Store used by the reconciliation pass; every call is its own transaction."""

    def load_open(self) -> list[ShipmentRecord]:
        """Return every shipment whose status is not terminal, in no particular order."""
        ...

    def update_if_changed(
        self,
        tracking_number: str,
        new_status: str,
        activity_at: datetime,
    ) -> UpdateOutcome:
        """Atomically move one shipment to ``new_status`` unless it is already there."""
        ...


__all__ = ["ShipmentRepository", "ShipmentStore", "ShipmentStoreError"]
