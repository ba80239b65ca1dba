"""HTTP client for the Leopard courier merchant API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from parcelsync.adapters.http_resilience import ResilientClient
from parcelsync.domain.ports.tracking import ProviderError, ProviderUnavailable, TrackingProvider

from .schema import CityListResponse, LeopardEnvelope, TrackResponse
from .translator import parse_city, parse_tracking_snapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Collection
    from datetime import tzinfo

    from parcelsync.config.http_resilience import ResilienceConfig
    from parcelsync.config.leopard import LeopardConfig
    from parcelsync.domain.model import CityDirectoryEntry, TrackingSnapshot

log = getLogger(__name__)

TRACK_PATH: Final[str] = "trackBookedPacket/format/json/"
CITIES_PATH: Final[str] = "getAllCities/format/json/"


class LeopardClient:
    """Tracking provider backed by the Leopard merchant API.

    Every public method performs exactly one logical request. Transport failures,
    timeouts and non-2xx answers surface as ``ProviderUnavailable``; answers whose
    payload is flagged as failed (or cannot be decoded) surface as ``ProviderError``.
    """

    def __init__(
        self,
        *,
        config: LeopardConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    @property
    def activity_timezone(self) -> tzinfo:
        return self._config.activity_timezone

    def track_batch(self, tracking_numbers: Collection[str]) -> list[TrackingSnapshot]:
        numbers = _join_tracking_numbers(tracking_numbers)
        if not numbers:
            return []
        return asyncio.run(self._track_async(numbers))

    def track(self, tracking_number: str) -> TrackingSnapshot | None:
        snapshots = self.track_batch([tracking_number])
        return snapshots[0] if snapshots else None

    def list_cities(self) -> list[CityDirectoryEntry]:
        return asyncio.run(self._list_cities_async())

    async def _track_async(self, numbers: str) -> list[TrackingSnapshot]:
        async with self._client_factory(self._resilience) as client:
            payload = await self._perform_request(
                client=client,
                path=TRACK_PATH,
                params={"track_numbers": numbers},
            )
        response = _validate(TrackResponse, payload)
        snapshots: list[TrackingSnapshot] = []
        for packet in response.packet_list:
            snapshot = parse_tracking_snapshot(packet, timezone=self._config.activity_timezone)
            if snapshot is not None:
                snapshots.append(snapshot)
        log.debug("Leopard returned %s snapshots", len(snapshots))
        return snapshots

    async def _list_cities_async(self) -> list[CityDirectoryEntry]:
        async with self._client_factory(self._resilience) as client:
            payload = await self._perform_request(client=client, path=CITIES_PATH, params={})
        response = _validate(CityListResponse, payload)
        return [parse_city(city) for city in response.city_list]

    async def _perform_request(
        self,
        *,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
    ) -> object:
        url = f"{self._config.base_url.rstrip('/')}/{path}"
        query = httpx.QueryParams(
            {
                "api_key": self._config.api_key,
                "api_password": self._config.api_password,
                **params,
            }
        )
        try:
            response = await client.get(url, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailable(
                f"Leopard {path} answered HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, TimeoutError) as exc:
            raise ProviderUnavailable(f"Leopard {path} request failed: {exc!r}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(f"Leopard {path} returned a non-JSON body") from exc

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected Leopard {path} response payload")

        envelope = _validate(LeopardEnvelope, payload)
        if not envelope.is_success:
            log.error(f"Leopard API error on {path}: {envelope.error_message}")
            raise ProviderError(envelope.error_message, code=envelope.status)
        return payload


def _join_tracking_numbers(tracking_numbers: Collection[str]) -> str:
    seen: dict[str, None] = {}
    for number in tracking_numbers:
        stripped = number.strip()
        if stripped:
            seen.setdefault(stripped, None)
    return ",".join(seen)


def _validate[TModel: LeopardEnvelope](model: type[TModel], payload: object) -> TModel:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ProviderError(f"Unexpected Leopard response payload: {exc}") from exc


if TYPE_CHECKING:
    from parcelsync.config.leopard import default_leopard_resilience

    _provider_check: TrackingProvider = LeopardClient(
        config=LeopardConfig(api_key="", api_password="", resilience=default_leopard_resilience())
    )
