"""Notification sinks: SMTP delivery, log-only delivery, and a background queue."""

from __future__ import annotations

import queue
import smtplib
import threading
import time
from email.message import EmailMessage
from logging import getLogger
from typing import TYPE_CHECKING, Final

from parcelsync.config.notifications import DEFAULT_DRAIN_SECONDS, DEFAULT_QUEUE_SIZE
from parcelsync.domain.ports.notifications import DeliveryError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from parcelsync.config.notifications import SmtpConfig
    from parcelsync.domain.model import StatusNotification
    from parcelsync.domain.ports.notifications import NotificationSink

log = getLogger(__name__)

NOT_AVAILABLE: Final[str] = "N/A"


def render_body(notification: StatusNotification) -> str:
    lines = [
        f"The status of shipment {notification.tracking_number} changed to "
        f"{notification.status}.",
        "",
        f"Order:          {notification.order_id or NOT_AVAILABLE}",
        f"Consignee:      {notification.consignee_name}",
        f"COD amount:     {notification.cod_amount}",
        f"Tracking no.:   {notification.tracking_number}",
        f"Pickup date:    {notification.pickup_date or NOT_AVAILABLE}",
        f"City:           {notification.city}",
    ]
    return "\n".join(lines) + "\n"


def build_message(
    notification: StatusNotification,
    *,
    sender: str,
    recipients: Sequence[str],
) -> EmailMessage:
    msg = EmailMessage()
    msg.set_content(render_body(notification))
    msg["Subject"] = notification.subject
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    return msg


class SmtpNotificationSink:
    """Send each notification as a plain-text email, one SMTP session per message."""

    def __init__(self, config: SmtpConfig, *, sender: str, recipients: Sequence[str]) -> None:
        if not recipients:
            raise ValueError("SMTP notifications need at least one recipient")
        self._config = config
        self._sender = sender
        self._recipients = tuple(recipients)

    def submit(self, notification: StatusNotification) -> None:
        msg = build_message(notification, sender=self._sender, recipients=self._recipients)
        try:
            with smtplib.SMTP(
                self._config.host,
                self._config.port,
                timeout=self._config.timeout_seconds,
            ) as server:
                if self._config.starttls:
                    server.starttls()
                if self._config.username:
                    server.login(self._config.username, self._config.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(
                f"Could not mail status of {notification.tracking_number}: {exc}"
            ) from exc
        log.info(f"Mailed {notification.subject!r} for {notification.tracking_number}")

    def close(self) -> None:
        return None


class LoggingNotificationSink:
    """Write notifications to the log instead of delivering them."""

    def submit(self, notification: StatusNotification) -> None:
        log.info(
            "Notification %r: tracking_number=%s, order_id=%s, status=%s, city=%s",
            notification.subject,
            notification.tracking_number,
            notification.order_id,
            notification.status,
            notification.city,
        )

    def close(self) -> None:
        return None


class QueuedNotificationSink:
    """Deliver through ``inner`` on a worker thread so callers never wait on the channel.

    ``submit`` only enqueues; it raises ``DeliveryError`` when the queue is full or
    closed. Failures of the inner sink happen after ``submit`` returned and are
    logged and counted in ``failed``. ``close`` delivers what is still queued, waiting
    no longer than ``drain_timeout`` seconds.
    """

    def __init__(
        self,
        inner: NotificationSink,
        *,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        drain_timeout: float = DEFAULT_DRAIN_SECONDS,
    ) -> None:
        if drain_timeout < 0:
            raise ValueError("drain_timeout must not be negative")
        self._inner = inner
        self._drain_timeout = drain_timeout
        self._queue: queue.Queue[StatusNotification | None] = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False
        self.delivered = 0
        self.failed = 0
        self._worker = threading.Thread(
            target=self._drain,
            name="parcelsync-notifications",
            daemon=True,
        )
        self._worker.start()

    @property
    def inner(self) -> NotificationSink:
        return self._inner

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, notification: StatusNotification) -> None:
        with self._lock:
            if self._closed:
                raise DeliveryError("Notification queue is closed")
            try:
                self._queue.put_nowait(notification)
            except queue.Full as exc:
                raise DeliveryError(
                    f"Notification queue is full; dropped {notification.tracking_number}"
                ) from exc

    def join(self) -> None:
        """Block until every submitted notification has been handled."""

        self._queue.join()

    def close(self, timeout: float | None = None) -> None:
        """Stop accepting work and deliver what is queued for at most ``timeout`` seconds.

        Without ``timeout`` the sink's ``drain_timeout`` applies. Notifications still
        queued when the time runs out are abandoned with a warning.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True
        limit = self._drain_timeout if timeout is None else timeout
        deadline = time.monotonic() + limit
        try:
            self._queue.put(None, timeout=limit)
        except queue.Full:
            log.warning("Notification queue still full after %ss", limit)
        self._worker.join(max(deadline - time.monotonic(), 0.0))
        if self._worker.is_alive():
            log.warning(
                "Notification worker still busy after %ss; abandoning %d queued notifications",
                limit,
                self._queue.qsize(),
            )
            return
        self._inner.close()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, notification: StatusNotification) -> None:
        try:
            self._inner.submit(notification)
        except Exception:  # noqa: BLE001
            self.failed += 1
            log.exception(f"Notification for {notification.tracking_number} was not delivered")
        else:
            self.delivered += 1


if TYPE_CHECKING:
    _smtp_check: NotificationSink = SmtpNotificationSink(
        SmtpConfig(host="localhost"), sender="", recipients=["ops@example.com"]
    )
    _log_check: NotificationSink = LoggingNotificationSink()
    _queue_check: NotificationSink = QueuedNotificationSink(LoggingNotificationSink())


__all__ = [
    "LoggingNotificationSink",
    "QueuedNotificationSink",
    "SmtpNotificationSink",
    "build_message",
    "render_body",
]
