from __future__ import annotations

import logging
import smtplib
import threading
import time
from email.message import EmailMessage
from typing import Self

import pytest

from parcelsync.adapters import mail
from parcelsync.adapters.mail import (
    LoggingNotificationSink,
    QueuedNotificationSink,
    SmtpNotificationSink,
    build_message,
)
from parcelsync.config import SmtpConfig
from parcelsync.domain.model import StatusNotification
from parcelsync.domain.notifications import NotificationDispatcher
from parcelsync.domain.ports.notifications import DeliveryError
from tests.helpers.shipments import RecordingSink


def _notification(tracking_number: str = "KI100") -> StatusNotification:
    return StatusNotification(
        order_id="ORD-1",
        status="Being Return",
        consignee_name="Ayesha Khan",
        cod_amount=2500,
        tracking_number=tracking_number,
        pickup_date=None,
        city="Lahore",
        subject="Delivery Failed - Zebtan Collection",
    )


class FakeSMTP:
    instances: list[FakeSMTP] = []
    fail_on_send: bool = False

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[str] = []
        self.sent: list[EmailMessage] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.calls.append("quit")

    def starttls(self) -> None:
        self.calls.append("starttls")

    def login(self, user: str, password: str) -> None:
        self.calls.append(f"login:{user}:{password}")

    def send_message(self, msg: EmailMessage) -> None:
        if FakeSMTP.fail_on_send:
            raise smtplib.SMTPRecipientsRefused({})
        self.sent.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch) -> type[FakeSMTP]:
    FakeSMTP.instances = []
    FakeSMTP.fail_on_send = False
    monkeypatch.setattr(mail.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_build_message_lists_every_field() -> None:
    msg = build_message(_notification(), sender="ops@shop.pk", recipients=["a@shop.pk", "b@shop.pk"])

    body = msg.get_content()
    assert msg["Subject"] == "Delivery Failed - Zebtan Collection"
    assert msg["From"] == "ops@shop.pk"
    assert msg["To"] == "a@shop.pk, b@shop.pk"
    for expected in ("ORD-1", "Ayesha Khan", "2500", "KI100", "Lahore", "Being Return", "N/A"):
        assert expected in body


def test_smtp_sink_sends_one_message(fake_smtp: type[FakeSMTP]) -> None:
    config = SmtpConfig(host="smtp.shop.pk", port=2525, username="bot", password="pw")
    sink = SmtpNotificationSink(config, sender="ops@shop.pk", recipients=["a@shop.pk"])

    sink.submit(_notification())

    [server] = fake_smtp.instances
    assert (server.host, server.port) == ("smtp.shop.pk", 2525)
    assert server.calls == ["starttls", "login:bot:pw", "quit"]
    assert server.sent[0]["To"] == "a@shop.pk"


def test_smtp_sink_skips_tls_and_login_when_not_configured(fake_smtp: type[FakeSMTP]) -> None:
    sink = SmtpNotificationSink(
        SmtpConfig(host="localhost", port=25, starttls=False),
        sender="ops@shop.pk",
        recipients=["a@shop.pk"],
    )

    sink.submit(_notification())

    assert fake_smtp.instances[0].calls == ["quit"]


def test_smtp_failure_raises_delivery_error(fake_smtp: type[FakeSMTP]) -> None:
    fake_smtp.fail_on_send = True
    sink = SmtpNotificationSink(SmtpConfig(host="localhost"), sender="x", recipients=["a@shop.pk"])

    with pytest.raises(DeliveryError, match="KI100"):
        sink.submit(_notification())


def test_smtp_sink_needs_recipients() -> None:
    with pytest.raises(ValueError, match="recipient"):
        SmtpNotificationSink(SmtpConfig(host="localhost"), sender="x", recipients=[])


def test_logging_sink_writes_notification(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="parcelsync.adapters.mail")

    LoggingNotificationSink().submit(_notification())

    assert "KI100" in caplog.text
    assert "Delivery Failed - Zebtan Collection" in caplog.text


def test_queued_sink_delivers_in_background_and_drains_on_close() -> None:
    inner = RecordingSink()
    sink = QueuedNotificationSink(inner)

    sink.submit(_notification("KI100"))
    sink.submit(_notification("KI200"))
    sink.close(timeout=5)

    assert [n.tracking_number for n in inner.notifications] == ["KI100", "KI200"]
    assert sink.delivered == 2
    assert inner.closed
    assert sink.closed


def test_queued_sink_counts_inner_failures_and_keeps_going() -> None:
    inner = RecordingSink(failing=["KI100"])
    sink = QueuedNotificationSink(inner)

    sink.submit(_notification("KI100"))
    sink.submit(_notification("KI200"))
    sink.join()

    assert sink.failed == 1
    assert sink.delivered == 1
    sink.close(timeout=5)


def test_queued_sink_rejects_after_close() -> None:
    sink = QueuedNotificationSink(RecordingSink())
    sink.close(timeout=5)

    with pytest.raises(DeliveryError, match="closed"):
        sink.submit(_notification())


def test_queued_sink_rejects_when_full() -> None:
    started = threading.Event()
    release = threading.Event()

    class BlockingSink(RecordingSink):
        def submit(self, notification: StatusNotification) -> None:
            started.set()
            release.wait(5)
            super().submit(notification)

    inner = BlockingSink()
    sink = QueuedNotificationSink(inner, maxsize=1)

    sink.submit(_notification("KI100"))
    assert started.wait(5)
    sink.submit(_notification("KI200"))
    with pytest.raises(DeliveryError, match="full"):
        sink.submit(_notification("KI300"))

    release.set()
    sink.close(timeout=5)
    assert [n.tracking_number for n in inner.notifications] == ["KI100", "KI200"]


class _HangingSink(RecordingSink):
    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def submit(self, notification: StatusNotification) -> None:
        self.started.set()
        self.release.wait(30)
        super().submit(notification)


def test_dispatcher_close_is_bounded_when_delivery_hangs(
    caplog: pytest.LogCaptureFixture,
) -> None:
    inner = _HangingSink()
    sink = QueuedNotificationSink(inner, drain_timeout=0.2)
    sink.submit(_notification("KI100"))
    sink.submit(_notification("KI200"))
    assert inner.started.wait(5)

    closer = threading.Thread(target=NotificationDispatcher(sink).close)
    started_at = time.monotonic()
    closer.start()
    closer.join(3)

    try:
        assert not closer.is_alive()
        assert time.monotonic() - started_at < 3
        assert sink.closed
        assert not inner.closed
        assert "abandoning" in caplog.text
    finally:
        inner.release.set()


def test_explicit_close_timeout_overrides_drain_time() -> None:
    inner = _HangingSink()
    sink = QueuedNotificationSink(inner, drain_timeout=60)
    sink.submit(_notification("KI100"))
    assert inner.started.wait(5)

    started_at = time.monotonic()
    try:
        sink.close(timeout=0.1)
        assert time.monotonic() - started_at < 3
    finally:
        inner.release.set()


def test_queued_sink_rejects_negative_drain_time() -> None:
    with pytest.raises(ValueError, match="drain_timeout"):
        QueuedNotificationSink(RecordingSink(), drain_timeout=-1)
