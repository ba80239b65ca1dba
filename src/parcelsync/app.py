"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from parcelsync.adapters.leopard import LeopardClient, parse_webhook_payload
from parcelsync.adapters.mail import (
    LoggingNotificationSink,
    QueuedNotificationSink,
    SmtpNotificationSink,
)
from parcelsync.adapters.sqlalchemy.store import SqlAlchemyShipmentStore
from parcelsync.adapters.sqlalchemy.unit_of_work import is_started, startup
from parcelsync.config import (
    ConfigurationError,
    get_activity_timezone,
    get_leopard_config,
    get_notification_config,
    get_reconciliation_config,
)
from parcelsync.domain.cities import CityDirectoryCache
from parcelsync.domain.notifications import NotificationDispatcher
from parcelsync.domain.ports.tracking import TrackingProvider
from parcelsync.domain.reconciliation import ReconciliationEngine
from parcelsync.domain.webhooks import apply_status_updates
from parcelsync.scheduling import run_scheduler

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator, Mapping
    from datetime import tzinfo

    from parcelsync.config import NotificationConfig, ReconciliationConfig
    from parcelsync.domain.model import CityDirectoryEntry, TrackingSnapshot
    from parcelsync.domain.ports.notifications import NotificationSink
    from parcelsync.domain.ports.persistence import ShipmentStore
    from parcelsync.domain.reconciliation import ReconciliationSummary
    from parcelsync.domain.webhooks import WebhookResult

TrackingProviderFactory = Callable[[], TrackingProvider]

DEFAULT_PROVIDER = "leopard"

log = getLogger(__name__)


def _build_leopard_client() -> TrackingProvider:
    return LeopardClient(config=get_leopard_config())


TRACKING_PROVIDERS: dict[str, TrackingProviderFactory] = {
    "leopard": _build_leopard_client,
}


def build_tracking_provider(name: str = DEFAULT_PROVIDER) -> TrackingProvider:
    """Build the courier integration registered under ``name``."""

    try:
        factory = TRACKING_PROVIDERS[name.strip().lower()]
    except KeyError as exc:
        known = ", ".join(sorted(TRACKING_PROVIDERS))
        raise ConfigurationError(f"Unknown tracking provider {name!r} (known: {known})") from exc
    return factory()


def build_notification_sink(config: NotificationConfig) -> NotificationSink:
    """SMTP delivery when a host is configured, log-only otherwise; always queued."""

    inner: NotificationSink
    if config.smtp is not None:
        inner = SmtpNotificationSink(config.smtp, sender=config.sender, recipients=config.recipients)
    else:
        log.info("SMTP_HOST not set, status notifications are only logged")
        inner = LoggingNotificationSink()
    return QueuedNotificationSink(
        inner,
        maxsize=config.queue_size,
        drain_timeout=config.drain_seconds,
    )


def _default_store() -> ShipmentStore:
    if not is_started():
        startup()
    return SqlAlchemyShipmentStore()


def _display_timezone(provider: TrackingProvider) -> tzinfo | None:
    if isinstance(provider, LeopardClient):
        return provider.activity_timezone
    return None


@contextmanager
def reconciliation_engine(
    *,
    provider: TrackingProvider | None = None,
    store: ShipmentStore | None = None,
    sink: NotificationSink | None = None,
    reconciliation_config: ReconciliationConfig | None = None,
    notification_config: NotificationConfig | None = None,
) -> Iterator[ReconciliationEngine]:
    """Wire an engine from configuration.

    A notification sink built here is drained and closed on exit; an injected
    ``sink`` stays open for its owner.
    """

    settings = reconciliation_config or get_reconciliation_config()
    notifications = notification_config or get_notification_config()
    effective_provider = provider or build_tracking_provider()
    effective_store = store or _default_store()
    effective_sink = sink or build_notification_sink(notifications)

    dispatcher = NotificationDispatcher(
        effective_sink,
        brand=notifications.brand,
        display_timezone=_display_timezone(effective_provider),
    )
    engine = ReconciliationEngine(
        provider=effective_provider,
        store=effective_store,
        cities=CityDirectoryCache(effective_provider, max_age=settings.city_cache_max_age),
        dispatcher=dispatcher,
    )
    try:
        yield engine
    finally:
        if sink is None:
            dispatcher.close()


def run_reconciliation_pass(
    *,
    provider: TrackingProvider | None = None,
    store: ShipmentStore | None = None,
    sink: NotificationSink | None = None,
) -> ReconciliationSummary:
    """Run a single reconciliation pass with the configured adapters."""

    with reconciliation_engine(provider=provider, store=store, sink=sink) as engine:
        return engine.run()


def run_scheduled_reconciliation(interval_seconds: float | None = None) -> None:
    """Run passes on a fixed interval until interrupted."""

    settings = get_reconciliation_config()
    interval = interval_seconds if interval_seconds is not None else settings.interval_seconds
    with reconciliation_engine(reconciliation_config=settings) as engine:
        run_scheduler(engine, interval)


def list_cities(*, provider: TrackingProvider | None = None) -> list[CityDirectoryEntry]:
    return (provider or build_tracking_provider()).list_cities()


def track_shipments(
    tracking_numbers: Collection[str],
    *,
    provider: TrackingProvider | None = None,
) -> list[TrackingSnapshot]:
    """Look up tracking numbers without touching the store."""

    return (provider or build_tracking_provider()).track_batch(tracking_numbers)


def apply_webhook_payload(
    payload: Mapping[str, object],
    *,
    store: ShipmentStore | None = None,
    sink: NotificationSink | None = None,
    provider: TrackingProvider | None = None,
    notify: bool = True,
) -> WebhookResult:
    """Apply a courier status push; raises ``ValueError`` for a malformed payload.

    City names in notifications are only resolved when a ``provider`` is given.
    An injected ``sink`` is left open.
    """

    activity_timezone = (
        _display_timezone(provider) if provider is not None else None
    ) or get_activity_timezone()
    updates = parse_webhook_payload(payload, timezone=activity_timezone)
    effective_store = store or _default_store()

    if not notify:
        return apply_status_updates(updates, store=effective_store)

    notifications = get_notification_config()
    dispatcher = NotificationDispatcher(
        sink or build_notification_sink(notifications),
        brand=notifications.brand,
        display_timezone=activity_timezone,
    )
    cities = CityDirectoryCache(provider) if provider is not None else None
    try:
        result = apply_status_updates(
            updates,
            store=effective_store,
            dispatcher=dispatcher,
            cities=cities,
        )
    finally:
        if sink is None:
            dispatcher.close()

    log.info(
        f"Webhook applied: total={result.total}, updated={result.updated}, "
        f"unchanged={result.unchanged}, not_found={result.not_found}, "
        f"errors={len(result.errors)}"
    )
    return result
