"""SQLAlchemy adapter package for parcelsync."""

from __future__ import annotations

from .mappings import UTCDateTime, create_all_tables, mapper_registry, shipment_table, start_mappers
from .repositories import SqlAlchemyShipmentRepository
from .store import SqlAlchemyShipmentStore
from .unit_of_work import (
    SqlAlchemyShipmentUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyShipmentRepository",
    "SqlAlchemyShipmentStore",
    "SqlAlchemyShipmentUnitOfWork",
    "StartupError",
    "UTCDateTime",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shipment_table",
    "shutdown",
    "start_mappers",
    "startup",
]
