"""Run reconciliation passes on a fixed interval."""

from __future__ import annotations

import signal
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from apscheduler.schedulers.blocking import BlockingScheduler

if TYPE_CHECKING:
    from types import FrameType

    from parcelsync.domain.reconciliation import ReconciliationEngine

log = getLogger(__name__)

JOB_ID: Final[str] = "reconcile-shipments"
STOP_SIGNALS: Final[tuple[signal.Signals, ...]] = (signal.SIGINT, signal.SIGTERM)


def build_scheduler(
    engine: ReconciliationEngine,
    interval_seconds: float,
    *,
    run_immediately: bool = True,
) -> BlockingScheduler:
    """Schedule ``engine.run`` every ``interval_seconds``.

    A trigger that fires while the previous pass is still running is dropped
    (``max_instances=1``), and missed triggers collapse into one (``coalesce``).
    """

    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")

    job_options: dict[str, Any] = {
        "id": JOB_ID,
        "name": "Reconcile shipment statuses",
        "max_instances": 1,
        "coalesce": True,
        "replace_existing": True,
    }
    if run_immediately:
        job_options["next_run_time"] = datetime.now(UTC)

    scheduler = BlockingScheduler(timezone=UTC)
    scheduler.add_job(engine.run, "interval", seconds=interval_seconds, **job_options)
    return scheduler


def run_scheduler(engine: ReconciliationEngine, interval_seconds: float) -> None:
    """Block running passes until SIGINT or SIGTERM.

    A stop signal cancels the pass in flight between two shipments and shuts the
    scheduler down without waiting for further triggers.
    """

    scheduler = build_scheduler(engine, interval_seconds)

    def _handle_stop(signum: int, _frame: FrameType | None) -> None:
        log.info("Received %s, stopping reconciliation", signal.Signals(signum).name)
        engine.request_stop()
        if scheduler.running:
            scheduler.shutdown(wait=False)

    previous = {sig: signal.signal(sig, _handle_stop) for sig in STOP_SIGNALS}
    log.info(f"Reconciling shipments every {interval_seconds:g}s")
    try:
        scheduler.start()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    log.info("Reconciliation scheduler stopped")


__all__ = ["JOB_ID", "build_scheduler", "run_scheduler"]
