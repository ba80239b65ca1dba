"""Translate Leopard payloads into domain values."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from parcelsync.domain.model import CityDirectoryEntry, TrackingSnapshot, WebhookStatusUpdate

from .schema import (
    WEBHOOK_DATE_FORMAT,
    CityPayload,
    PacketPayload,
    TrackingDetailPayload,
    WebhookPayload,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import tzinfo

log = getLogger(__name__)

_DATETIME_FORMATS: Final[tuple[str, ...]] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)
_DATE_FORMATS: Final[tuple[str, ...]] = ("%Y-%m-%d", "%d/%m/%Y")
_TIME_FORMATS: Final[tuple[str, ...]] = ("%H:%M:%S", "%H:%M", "%I:%M %p", "%I:%M:%S %p")


def _localize(value: datetime, timezone: tzinfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone)
    return value


def _try_formats(text: str, formats: Iterable[str]) -> datetime | None:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)  # noqa: DTZ007
        except ValueError:
            continue
    return None


def parse_activity_datetime(
    date_text: str | None,
    time_text: str | None,
    *,
    timezone: tzinfo,
) -> datetime | None:
    """Parse a Leopard activity date (optionally split into date and time)."""

    if date_text is None:
        return None
    text = date_text.strip()

    parsed = _try_formats(text, _DATETIME_FORMATS)
    if parsed is None:
        day = _try_formats(text, _DATE_FORMATS)
        if day is None:
            log.debug("Unparseable Leopard activity date: %r", date_text)
            return None
        parsed = day
        clock = _try_formats(time_text.strip(), _TIME_FORMATS) if time_text else None
        if clock is not None:
            parsed = day.replace(hour=clock.hour, minute=clock.minute, second=clock.second)
    return _localize(parsed, timezone)


def _activity_bounds(
    details: Iterable[TrackingDetailPayload],
    *,
    timezone: tzinfo,
) -> tuple[datetime | None, datetime | None]:
    stamps: list[datetime] = []
    for detail in details:
        stamp = parse_activity_datetime(
            detail.activity_date, detail.activity_time, timezone=timezone
        )
        if stamp is not None:
            stamps.append(stamp)
    if not stamps:
        return None, None
    return min(stamps), max(stamps)


def parse_tracking_snapshot(
    payload: PacketPayload | Mapping[str, object],
    *,
    timezone: tzinfo,
) -> TrackingSnapshot | None:
    """Build a snapshot from one packet entry, or ``None`` when it lacks a number or status."""

    packet = (
        payload if isinstance(payload, PacketPayload) else PacketPayload.model_validate(payload)
    )
    if packet.track_number is None or packet.booked_packet_status is None:
        log.debug("Skipping packet without tracking number or status: %s", packet)
        return None

    first_activity, last_activity = _activity_bounds(packet.tracking_detail, timezone=timezone)
    return TrackingSnapshot(
        tracking_number=packet.track_number,
        status=packet.booked_packet_status,
        activity_at=last_activity,
        first_activity_at=first_activity,
        destination_city_name=packet.destination_city_name,
    )


def parse_city(payload: CityPayload | Mapping[str, object]) -> CityDirectoryEntry:
    city = payload if isinstance(payload, CityPayload) else CityPayload.model_validate(payload)
    return CityDirectoryEntry(code=city.id, name=city.name)


def parse_webhook_payload(
    payload: WebhookPayload | Mapping[str, object],
    *,
    timezone: tzinfo,
) -> list[WebhookStatusUpdate]:
    """Validate a pushed status batch; raises ``ValueError`` on malformed entries."""

    document = (
        payload if isinstance(payload, WebhookPayload) else WebhookPayload.model_validate(payload)
    )
    updates: list[WebhookStatusUpdate] = []
    for entry in document.data:
        try:
            activity = datetime.strptime(entry.activity_date.strip(), WEBHOOK_DATE_FORMAT)  # noqa: DTZ007
        except ValueError as exc:
            raise ValueError(
                f"Invalid activity_date for {entry.cn_number}: {entry.activity_date!r}"
            ) from exc
        updates.append(
            WebhookStatusUpdate(
                tracking_number=entry.cn_number,
                status=entry.status,
                activity_at=_localize(activity, timezone),
                receiver_name=entry.receiver_name,
                reason=entry.reason,
            )
        )
    return updates


__all__ = [
    "parse_activity_datetime",
    "parse_city",
    "parse_tracking_snapshot",
    "parse_webhook_payload",
]
