"""Domain port definitions for adapters."""

from __future__ import annotations

from .notifications import DeliveryError, NotificationSink
from .persistence import ShipmentRepository, ShipmentStore, ShipmentStoreError
from .tracking import ProviderError, ProviderUnavailable, TrackingProvider, TrackingProviderError
from .unit_of_work import (
    RepositoryCollection,
    ShipmentRepositories,
    ShipmentUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "DeliveryError",
    "NotificationSink",
    "ProviderError",
    "ProviderUnavailable",
    "RepositoryCollection",
    "ShipmentRepositories",
    "ShipmentRepository",
    "ShipmentStore",
    "ShipmentStoreError",
    "ShipmentUnitOfWork",
    "TrackingProvider",
    "TrackingProviderError",
    "UnitOfWork",
]
