"""Turn status change events into outbound notifications."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from parcelsync.domain.model import StatusNotification, subject_for_status
from parcelsync.domain.ports.notifications import DeliveryError

if TYPE_CHECKING:
    from datetime import tzinfo

    from parcelsync.domain.model import StatusChangeEvent
    from parcelsync.domain.ports.notifications import NotificationSink

log = getLogger(__name__)

PICKUP_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


def build_notification(
    event: StatusChangeEvent,
    *,
    brand: str | None = None,
    display_timezone: tzinfo | None = None,
) -> StatusNotification:
    pickup_date: str | None = None
    if event.picking_time is not None:
        picked = event.picking_time
        if display_timezone is not None and picked.tzinfo is not None:
            picked = picked.astimezone(display_timezone)
        pickup_date = picked.strftime(PICKUP_DATE_FORMAT)

    return StatusNotification(
        order_id=event.order_id,
        status=event.new_status,
        consignee_name=event.consignee_name,
        cod_amount=int(event.cod_amount),
        tracking_number=event.tracking_number,
        pickup_date=pickup_date,
        city=event.city_name,
        subject=subject_for_status(event.new_status, brand=brand),
    )


class NotificationDispatcher:
    """Hand status change notifications to a sink without waiting for delivery.

    Timestamps in the payload are rendered in ``display_timezone`` (the courier's
    local time) when one is given.
    """

    def __init__(
        self,
        sink: NotificationSink,
        *,
        brand: str | None = None,
        display_timezone: tzinfo | None = None,
    ) -> None:
        self._sink = sink
        self._brand = brand
        self._display_timezone = display_timezone

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    def send(self, event: StatusChangeEvent) -> StatusNotification:
        notification = build_notification(
            event,
            brand=self._brand,
            display_timezone=self._display_timezone,
        )
        try:
            self._sink.submit(notification)
        except DeliveryError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise DeliveryError(
                f"Could not submit notification for {event.tracking_number}: {exc}"
            ) from exc
        log.debug(
            "Submitted %r notification for %s (%s -> %s)",
            notification.subject,
            event.tracking_number,
            event.previous_status,
            event.new_status,
        )
        return notification

    def close(self) -> None:
        self._sink.close()


__all__ = ["PICKUP_DATE_FORMAT", "NotificationDispatcher", "build_notification"]
