from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from datetime import datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from parcelsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from parcelsync.adapters.leopard import LeopardClient
from parcelsync.adapters.sqlalchemy import SqlAlchemyShipmentStore
from parcelsync.config import LeopardConfig, default_leopard_resilience
from parcelsync.domain.cities import CityDirectoryCache
from parcelsync.domain.model import PICKED_UP_STATUS
from parcelsync.domain.notifications import NotificationDispatcher
from parcelsync.domain.reconciliation import PassOutcome, ReconciliationEngine
from tests.helpers.shipments import PKT, RecordingSink, make_shipment

if TYPE_CHECKING:
    from parcelsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyShipmentUnitOfWork
    from parcelsync.domain.model import ShipmentRecord


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def _leopard_handler(status: str) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/getAllCities/format/json/"):
            return httpx.Response(
                200, json={"status": 1, "error": 0, "city_list": [{"id": 789, "name": "Lahore"}]}
            )
        return httpx.Response(
            200,
            json={
                "status": 1,
                "error": 0,
                "packet_list": [
                    {
                        "track_number": "KI100",
                        "booked_packet_status": status,
                        "Tracking Detail": [{"Activity_Date": "2024-01-01 10:00:00"}],
                    }
                ],
            },
        )

    return handler


def _engine(
    handler: Callable[[httpx.Request], httpx.Response],
    unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork],
    sink: RecordingSink,
) -> ReconciliationEngine:
    provider = LeopardClient(
        config=LeopardConfig(
            api_key="key",
            api_password="secret",
            resilience=default_leopard_resilience(),
            activity_timezone=PKT,
        ),
        client_factory=_make_client_factory(handler),
    )
    return ReconciliationEngine(
        provider=provider,
        store=SqlAlchemyShipmentStore(unit_of_work),
        cities=CityDirectoryCache(provider),
        dispatcher=NotificationDispatcher(sink, display_timezone=PKT),
    )


def _seed(unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork]) -> None:
    with unit_of_work() as uow:
        uow.repositories.shipments.add(make_shipment("KI100", "Booked"))
        uow.commit()


def _load(unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork]) -> ShipmentRecord:
    with unit_of_work() as uow:
        record = uow.repositories.shipments.get("KI100")
    assert record is not None
    return record


@pytest.mark.integration
def test_pickup_is_stored_once_and_notified_once(
    sqlite_unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork],
) -> None:
    _seed(sqlite_unit_of_work)
    sink = RecordingSink()
    engine = _engine(_leopard_handler(PICKED_UP_STATUS), sqlite_unit_of_work, sink)

    first = engine.run()
    after_first = _load(sqlite_unit_of_work)
    second = engine.run()
    after_second = _load(sqlite_unit_of_work)

    assert first.outcome is PassOutcome.COMPLETED
    assert first.updated == 1
    assert after_first.status == PICKED_UP_STATUS
    assert after_first.picking_time == datetime(2024, 1, 1, 10, tzinfo=PKT)
    assert second.updated == 0
    assert second.unchanged == 1
    assert after_second.updated_at == after_first.updated_at
    [notification] = sink.notifications
    assert notification.city == "Lahore"
    assert notification.pickup_date == "2024-01-01 10:00:00"


@pytest.mark.integration
def test_unchanged_remote_status_writes_nothing(
    sqlite_unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork],
) -> None:
    _seed(sqlite_unit_of_work)
    before = _load(sqlite_unit_of_work)
    sink = RecordingSink()

    summary = _engine(_leopard_handler("Booked"), sqlite_unit_of_work, sink).run()

    after = _load(sqlite_unit_of_work)
    assert summary.unchanged == 1
    assert after.updated_at == before.updated_at
    assert sink.notifications == []


@pytest.mark.integration
def test_provider_timeout_leaves_store_untouched(
    sqlite_unit_of_work: Callable[[], SqlAlchemyShipmentUnitOfWork],
) -> None:
    _seed(sqlite_unit_of_work)
    before = _load(sqlite_unit_of_work)
    sink = RecordingSink()

    def handler(_request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out")

    summary = _engine(handler, sqlite_unit_of_work, sink).run()

    after = _load(sqlite_unit_of_work)
    assert summary.outcome is PassOutcome.ABORTED
    assert not summary.ok
    assert (after.status, after.updated_at) == (before.status, before.updated_at)
    assert sink.notifications == []
