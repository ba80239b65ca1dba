"""Notification delivery configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_bool, env_float, env_int, env_list, optional_env_var
from .errors import ConfigurationError

DEFAULT_SMTP_PORT: Final[int] = 587
DEFAULT_QUEUE_SIZE: Final[int] = 1000
DEFAULT_DRAIN_SECONDS: Final[float] = 10.0


@dataclass(frozen=True, slots=True)
class SmtpConfig:
    host: str
    port: int = DEFAULT_SMTP_PORT
    username: str | None = None
    password: str | None = None
    starttls: bool = True
    timeout_seconds: float = 10.0


@dataclass(frozen=True, slots=True)
class NotificationConfig:
    """Where status-change notifications go.

    ``smtp`` is ``None`` when no SMTP host is configured; notifications are then
    only written to the log. ``drain_seconds`` bounds how long shutdown waits for
    queued notifications.
    """

    recipients: tuple[str, ...] = ()
    sender: str = "parcelsync@localhost"
    brand: str | None = None
    smtp: SmtpConfig | None = None
    queue_size: int = DEFAULT_QUEUE_SIZE
    drain_seconds: float = DEFAULT_DRAIN_SECONDS


def get_notification_config() -> NotificationConfig:
    recipients = env_list("NOTIFY_RECIPIENTS")
    host = optional_env_var("SMTP_HOST")
    smtp: SmtpConfig | None = None
    if host is not None:
        if not recipients:
            raise ConfigurationError("NOTIFY_RECIPIENTS is required when SMTP_HOST is set")
        smtp = SmtpConfig(
            host=host,
            port=env_int("SMTP_PORT", DEFAULT_SMTP_PORT),
            username=optional_env_var("SMTP_USERNAME"),
            password=optional_env_var("SMTP_PASSWORD"),
            starttls=env_bool("SMTP_STARTTLS", default=True),
        )

    queue_size = env_int("NOTIFY_QUEUE_SIZE", DEFAULT_QUEUE_SIZE)
    if queue_size <= 0:
        raise ConfigurationError("NOTIFY_QUEUE_SIZE must be positive")

    drain_seconds = env_float("NOTIFY_DRAIN_SECONDS", DEFAULT_DRAIN_SECONDS)
    if drain_seconds < 0:
        raise ConfigurationError("NOTIFY_DRAIN_SECONDS must not be negative")

    return NotificationConfig(
        recipients=recipients,
        sender=optional_env_var("NOTIFY_SENDER") or NotificationConfig.sender,
        brand=optional_env_var("NOTIFY_BRAND"),
        smtp=smtp,
        queue_size=queue_size,
        drain_seconds=drain_seconds,
    )
