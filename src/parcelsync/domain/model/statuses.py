"""Courier status vocabulary.

Statuses are kept as plain strings because the courier does not publish a closed
list. Only the handful of values the back office reacts to are named here.
"""

from __future__ import annotations

from typing import Final

CANCELLED_STATUS: Final[str] = "Cancelled"
DELIVERED_STATUS: Final[str] = "Delivered"
PICKED_UP_STATUS: Final[str] = "Shipment Picked"
BOOKED_STATUS: Final[str] = "Pickup Request not Send"

TERMINAL_STATUSES: Final[frozenset[str]] = frozenset({CANCELLED_STATUS, DELIVERED_STATUS})

# Statuses that mean delivery did not go through (subject line only).
PROBLEM_STATUSES: Final[frozenset[str]] = frozenset({"Pending", "Being Return"})

DEFAULT_SUBJECT: Final[str] = "Delivery Status Changed"
PROBLEM_SUBJECT: Final[str] = "Delivery Failed"


def is_open(status: str | None) -> bool:
    return status not in TERMINAL_STATUSES


def subject_for_status(status: str, *, brand: str | None = None) -> str:
    """Return the notification subject line for a shipment that moved to ``status``."""

    if status in PROBLEM_STATUSES:
        return f"{PROBLEM_SUBJECT} - {brand}" if brand else PROBLEM_SUBJECT
    return DEFAULT_SUBJECT


__all__ = [
    "BOOKED_STATUS",
    "CANCELLED_STATUS",
    "DEFAULT_SUBJECT",
    "DELIVERED_STATUS",
    "PICKED_UP_STATUS",
    "PROBLEM_STATUSES",
    "PROBLEM_SUBJECT",
    "TERMINAL_STATUSES",
    "is_open",
    "subject_for_status",
]
