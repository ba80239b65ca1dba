"""Shipment store that opens one unit of work per operation."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from parcelsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyShipmentUnitOfWork
from parcelsync.domain.model import UpdateKind
from parcelsync.domain.ports.persistence import ShipmentStoreError

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from parcelsync.domain.model import ShipmentRecord, UpdateOutcome
    from parcelsync.domain.ports.unit_of_work import ShipmentUnitOfWork

log = getLogger(__name__)


class SqlAlchemyShipmentStore:
    """Each call runs in its own transaction so a failed write never affects its neighbours."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], ShipmentUnitOfWork] | None = None,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory or SqlAlchemyShipmentUnitOfWork

    def load_open(self) -> list[ShipmentRecord]:
        try:
            with self._unit_of_work_factory() as uow:
                return uow.repositories.shipments.load_open()
        except SQLAlchemyError as exc:
            raise ShipmentStoreError(f"Could not load open shipments: {exc}") from exc

    def update_if_changed(
        self,
        tracking_number: str,
        new_status: str,
        activity_at: datetime,
    ) -> UpdateOutcome:
        try:
            with self._unit_of_work_factory() as uow:
                outcome = uow.repositories.shipments.update_if_changed(
                    tracking_number, new_status, activity_at
                )
                if outcome.kind is UpdateKind.UPDATED:
                    uow.commit()
                return outcome
        except SQLAlchemyError as exc:
            log.debug("Rolled back update of %s", tracking_number, exc_info=True)
            raise ShipmentStoreError(f"Could not update shipment {tracking_number}: {exc}") from exc


if TYPE_CHECKING:
    from parcelsync.domain.ports.persistence import ShipmentStore

    _store_check: ShipmentStore = SqlAlchemyShipmentStore()
