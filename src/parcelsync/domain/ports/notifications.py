"""Ports for delivering status-change notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from parcelsync.domain.model import StatusNotification


class DeliveryError(RuntimeError):
    """Raised when a notification cannot be handed to its outbound channel."""


@runtime_checkable
class NotificationSink(Protocol):
    def submit(self, notification: StatusNotification) -> None: ...

    def close(self) -> None: ...


__all__ = ["DeliveryError", "NotificationSink"]
