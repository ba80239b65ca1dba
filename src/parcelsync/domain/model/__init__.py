"""Shipment domain model."""

from __future__ import annotations

from .events import EventSource, StatusChangeEvent, StatusNotification
from .shipment import ShipmentRecord, UpdateKind, UpdateOutcome
from .statuses import (
    PICKED_UP_STATUS,
    PROBLEM_STATUSES,
    TERMINAL_STATUSES,
    is_open,
    subject_for_status,
)
from .tracking import CityDirectoryEntry, TrackingSnapshot, WebhookStatusUpdate

__all__ = [
    "PICKED_UP_STATUS",
    "PROBLEM_STATUSES",
    "TERMINAL_STATUSES",
    "CityDirectoryEntry",
    "EventSource",
    "ShipmentRecord",
    "StatusChangeEvent",
    "StatusNotification",
    "TrackingSnapshot",
    "UpdateKind",
    "UpdateOutcome",
    "WebhookStatusUpdate",
    "is_open",
    "subject_for_status",
]
