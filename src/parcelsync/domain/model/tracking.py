"""Transient values produced by the courier: tracking snapshots and city entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class TrackingSnapshot:
    """The courier's view of one tracking number at fetch time."""

    tracking_number: str
    status: str
    activity_at: datetime | None = None
    first_activity_at: datetime | None = None
    destination_city_name: str | None = None


@dataclass(frozen=True, slots=True)
class CityDirectoryEntry:
    code: int
    name: str


@dataclass(frozen=True, slots=True)
class WebhookStatusUpdate:
    """A status push received from the courier outside the reconciliation pass."""

    tracking_number: str
    status: str
    activity_at: datetime
    receiver_name: str | None = None
    reason: str | None = None
