"""Lazily refreshed lookup from courier city codes to display names."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Final, Protocol

from parcelsync.domain.ports.tracking import TrackingProviderError

if TYPE_CHECKING:
    from parcelsync.domain.ports.tracking import TrackingProvider

log = getLogger(__name__)

UNKNOWN_CITY: Final[str] = "Unknown City"
MAX_CACHE_AGE: Final[timedelta] = timedelta(hours=24)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def check_max_age(max_age: timedelta) -> timedelta:
    if max_age < timedelta(0) or max_age > MAX_CACHE_AGE:
        raise ValueError("City cache max age must be between 0 and 24 hours")
    return max_age


def normalize_city_code(code: object) -> int | None:
    """Coerce a stored or reported city code to the courier's integer form."""

    if code is None or isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    text = str(code).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class CityDirectoryCache:
    """Map courier city codes to names, refreshing at most once per pass.

    City names only decorate notifications, so a failed refresh never raises: the
    previous listing keeps being served, and without one every lookup resolves to
    ``UNKNOWN_CITY``.
    """

    def __init__(
        self,
        provider: TrackingProvider,
        *,
        max_age: timedelta = MAX_CACHE_AGE,
        clock: Clock = _utcnow,
    ) -> None:
        self._provider = provider
        self._max_age = check_max_age(max_age)
        self._clock = clock
        self._names: dict[int, str] | None = None
        self._loaded_at: datetime | None = None
        self._attempted_this_pass = False
        self._lock = threading.Lock()

    @property
    def loaded_at(self) -> datetime | None:
        return self._loaded_at

    def begin_pass(self) -> None:
        """Allow one refresh attempt during the pass that is starting."""

        with self._lock:
            self._attempted_this_pass = False

    def resolve(self, code: object) -> str:
        key = normalize_city_code(code)
        with self._lock:
            self._refresh_if_due()
            names = self._names
        if key is None or names is None:
            return UNKNOWN_CITY
        return names.get(key, UNKNOWN_CITY)

    def _is_stale(self) -> bool:
        if self._names is None or self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self._max_age

    def _refresh_if_due(self) -> None:
        if self._attempted_this_pass or not self._is_stale():
            return
        self._attempted_this_pass = True
        try:
            entries = self._provider.list_cities()
        except TrackingProviderError as exc:
            if self._names is None:
                log.warning("City listing failed, serving %r for this pass: %s", UNKNOWN_CITY, exc)
            else:
                log.warning("City listing failed, keeping listing from %s: %s", self._loaded_at, exc)
            return
        self._names = {entry.code: entry.name for entry in entries}
        self._loaded_at = self._clock()
        log.info("Loaded %s courier cities", len(self._names))


__all__ = [
    "MAX_CACHE_AGE",
    "UNKNOWN_CITY",
    "CityDirectoryCache",
    "check_max_age",
    "normalize_city_code",
]
