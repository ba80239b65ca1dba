"""Shipment status reconciliation against the courier's tracking feed.

One pass runs four stages in order:

1. collect the open shipments from the store;
2. fetch tracking snapshots for all of them in a single batch request;
3. diff each snapshot against the stored status;
4. apply changed statuses with a conditional write and notify once per transition.

Failures in stages 1 and 2 abandon the pass before anything is written. Failures
in stages 3 and 4 are confined to the shipment they concern.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from parcelsync.domain.cities import UNKNOWN_CITY
from parcelsync.domain.model import StatusChangeEvent, UpdateKind
from parcelsync.domain.ports.notifications import DeliveryError
from parcelsync.domain.ports.persistence import ShipmentStoreError
from parcelsync.domain.ports.tracking import TrackingProviderError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from parcelsync.domain.cities import CityDirectoryCache, Clock
    from parcelsync.domain.model import ShipmentRecord, TrackingSnapshot
    from parcelsync.domain.notifications import NotificationDispatcher
    from parcelsync.domain.ports.persistence import ShipmentStore
    from parcelsync.domain.ports.tracking import TrackingProvider

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PassOutcome(StrEnum):
    COMPLETED = "completed"
    NOTHING_TO_DO = "nothing_to_do"
    ABORTED = "aborted"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ReconciliationSummary:
    """Counters describing one reconciliation pass."""

    outcome: PassOutcome = PassOutcome.COMPLETED
    open_shipments: int = 0
    snapshots: int = 0
    updated: int = 0
    unchanged: int = 0
    unknown: int = 0
    not_found: int = 0
    failed: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not PassOutcome.ABORTED and self.failed == 0


def batch_tracking_numbers(shipments: Iterable[ShipmentRecord]) -> list[str]:
    """Trimmed, non-blank, de-duplicated tracking numbers in first-seen order."""

    seen: dict[str, None] = {}
    for shipment in shipments:
        if shipment.tracking_number is None:
            continue
        number = shipment.tracking_number.strip()
        if number:
            seen.setdefault(number, None)
    return list(seen)


def _index_by_tracking_number(shipments: Iterable[ShipmentRecord]) -> dict[str, ShipmentRecord]:
    indexed: dict[str, ShipmentRecord] = {}
    for shipment in shipments:
        if shipment.tracking_number is None:
            continue
        number = shipment.tracking_number.strip()
        if not number:
            continue
        if number in indexed:
            log.warning("Tracking number %s is stored on more than one open shipment", number)
        indexed[number] = shipment
    return indexed


@dataclass(slots=True)
class ReconciliationEngine:
    """Reconcile stored shipment statuses with the courier's tracking feed."""

    provider: TrackingProvider
    store: ShipmentStore
    cities: CityDirectoryCache
    dispatcher: NotificationDispatcher
    clock: Clock = _utcnow
    _running: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def request_stop(self) -> None:
        """Ask the current (and any later) pass to stop between shipments."""

        self._stop.set()

    def reset_stop(self) -> None:
        self._stop.clear()

    def run(self) -> ReconciliationSummary:
        """Run one pass; a pass that is already running makes this call a no-op."""

        if not self._running.acquire(blocking=False):
            log.warning("Reconciliation pass already running, skipping this trigger")
            return ReconciliationSummary(outcome=PassOutcome.SKIPPED)
        try:
            summary = ReconciliationSummary(started_at=self.clock())
            self._run_pass(summary)
            summary.finished_at = self.clock()
            self._log_summary(summary)
            return summary
        finally:
            self._running.release()

    def _run_pass(self, summary: ReconciliationSummary) -> None:
        if self._stop.is_set():
            summary.outcome = PassOutcome.CANCELLED
            return

        try:
            open_shipments = self.store.load_open()
        except ShipmentStoreError as exc:
            log.error("Reconciliation aborted: could not load open shipments: %s", exc)
            summary.outcome = PassOutcome.ABORTED
            summary.error = str(exc)
            return

        summary.open_shipments = len(open_shipments)
        by_number = _index_by_tracking_number(open_shipments)
        if not by_number:
            summary.outcome = PassOutcome.NOTHING_TO_DO
            return

        try:
            snapshots = self.provider.track_batch(batch_tracking_numbers(open_shipments))
        except TrackingProviderError as exc:
            log.error("Reconciliation aborted: tracking request failed: %s", exc)
            summary.outcome = PassOutcome.ABORTED
            summary.error = str(exc)
            return

        summary.snapshots = len(snapshots)
        self.cities.begin_pass()

        for snapshot in snapshots:
            if self._stop.is_set():
                log.info("Reconciliation pass cancelled before %s", snapshot.tracking_number)
                summary.outcome = PassOutcome.CANCELLED
                return
            self._reconcile_one(snapshot, by_number, summary)

    def _reconcile_one(
        self,
        snapshot: TrackingSnapshot,
        by_number: dict[str, ShipmentRecord],
        summary: ReconciliationSummary,
    ) -> None:
        number = snapshot.tracking_number.strip()
        shipment = by_number.get(number)
        if shipment is None:
            log.warning("Unknown tracking number in response: %s", number)
            summary.unknown += 1
            return

        if shipment.status == snapshot.status:
            summary.unchanged += 1
            return

        # The record was read at collect time; the store re-checks under its own write.
        stored_number = shipment.tracking_number or number
        activity_at = snapshot.activity_at or self.clock()
        try:
            outcome = self.store.update_if_changed(stored_number, snapshot.status, activity_at)
        except ShipmentStoreError as exc:
            log.error("Could not update shipment %s: %s", number, exc)
            summary.failed += 1
            return

        if outcome.kind is UpdateKind.NOT_FOUND:
            log.warning("Shipment %s disappeared from the store before its update", number)
            summary.not_found += 1
            return
        if outcome.kind is UpdateKind.UNCHANGED or outcome.record is None:
            summary.unchanged += 1
            return

        summary.updated += 1
        log.info(
            "Shipment %s status changed: %s -> %s",
            number,
            outcome.previous_status,
            snapshot.status,
        )
        self._notify(outcome.record, outcome.previous_status, snapshot, summary)

    def _notify(
        self,
        record: ShipmentRecord,
        previous_status: str | None,
        snapshot: TrackingSnapshot,
        summary: ReconciliationSummary,
    ) -> None:
        city_name = self.cities.resolve(record.destination_city)
        if city_name == UNKNOWN_CITY and snapshot.destination_city_name:
            city_name = snapshot.destination_city_name

        try:
            event = StatusChangeEvent.from_record(
                record,
                previous_status=previous_status,
                city_name=city_name,
            )
            self.dispatcher.send(event)
        except (DeliveryError, ValueError) as exc:
            log.error("Notification for %s failed: %s", snapshot.tracking_number, exc)
            summary.notifications_failed += 1
            return
        summary.notifications_sent += 1

    def _log_summary(self, summary: ReconciliationSummary) -> None:
        if summary.outcome is PassOutcome.ABORTED:
            return
        log.info(
            f"Reconciliation {summary.outcome}: open={summary.open_shipments}, "
            f"snapshots={summary.snapshots}, updated={summary.updated}, "
            f"unchanged={summary.unchanged}, unknown={summary.unknown}, "
            f"not_found={summary.not_found}, failed={summary.failed}, "
            f"notified={summary.notifications_sent}, "
            f"notify_failed={summary.notifications_failed}"
        )


__all__ = [
    "PassOutcome",
    "ReconciliationEngine",
    "ReconciliationSummary",
    "batch_tracking_numbers",
]
