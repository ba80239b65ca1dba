"""Public interface for the Leopard courier adapter."""

from __future__ import annotations

from .client import LeopardClient
from .schema import (
    CityListResponse,
    PacketPayload,
    TrackingDetailPayload,
    TrackResponse,
    WebhookEntry,
    WebhookPayload,
)
from .translator import (
    parse_activity_datetime,
    parse_city,
    parse_tracking_snapshot,
    parse_webhook_payload,
)

__all__ = [
    "CityListResponse",
    "LeopardClient",
    "PacketPayload",
    "TrackResponse",
    "TrackingDetailPayload",
    "WebhookEntry",
    "WebhookPayload",
    "parse_activity_datetime",
    "parse_city",
    "parse_tracking_snapshot",
    "parse_webhook_payload",
]
