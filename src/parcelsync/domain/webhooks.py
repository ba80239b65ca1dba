"""Apply status updates pushed by the courier outside the reconciliation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from parcelsync.domain.cities import UNKNOWN_CITY
from parcelsync.domain.model import StatusChangeEvent, UpdateKind
from parcelsync.domain.ports.notifications import DeliveryError
from parcelsync.domain.ports.persistence import ShipmentStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from parcelsync.domain.cities import CityDirectoryCache
    from parcelsync.domain.model import WebhookStatusUpdate
    from parcelsync.domain.notifications import NotificationDispatcher
    from parcelsync.domain.ports.persistence import ShipmentStore

log = getLogger(__name__)


@dataclass(slots=True)
class WebhookResult:
    total: int = 0
    updated: int = 0
    unchanged: int = 0
    not_found: int = 0
    errors: list[str] = field(default_factory=list[str])


def apply_status_updates(
    updates: Iterable[WebhookStatusUpdate],
    *,
    store: ShipmentStore,
    dispatcher: NotificationDispatcher | None = None,
    cities: CityDirectoryCache | None = None,
) -> WebhookResult:
    """Write pushed statuses through the same conditional update the pass uses.

    Because the store only reports ``UPDATED`` to the writer that actually moved the
    record, a webhook and a concurrent reconciliation pass never both notify for the
    same transition.
    """

    result = WebhookResult()
    if cities is not None:
        cities.begin_pass()

    for update in updates:
        result.total += 1
        try:
            outcome = store.update_if_changed(
                update.tracking_number, update.status, update.activity_at
            )
        except ShipmentStoreError as exc:
            message = f"Error updating shipment {update.tracking_number}: {exc}"
            log.error(message)
            result.errors.append(message)
            continue

        if outcome.kind is UpdateKind.NOT_FOUND:
            result.not_found += 1
            result.errors.append(f"Shipment with tracking number {update.tracking_number} not found")
            continue
        if outcome.kind is UpdateKind.UNCHANGED or outcome.record is None:
            result.unchanged += 1
            continue

        result.updated += 1
        log.info(
            "Shipment status updated via webhook: tracking_number=%s, old=%s, new=%s, "
            "activity=%s, receiver=%s, reason=%s",
            update.tracking_number,
            outcome.previous_status,
            update.status,
            update.activity_at,
            update.receiver_name,
            update.reason,
        )

        if dispatcher is None:
            continue
        city_name = cities.resolve(outcome.record.destination_city) if cities else UNKNOWN_CITY
        try:
            dispatcher.send(
                StatusChangeEvent.from_record(
                    outcome.record,
                    previous_status=outcome.previous_status,
                    city_name=city_name,
                    source="webhook",
                )
            )
        except DeliveryError as exc:
            log.error("Notification for %s failed: %s", update.tracking_number, exc)

    return result


__all__ = ["WebhookResult", "apply_status_updates"]
