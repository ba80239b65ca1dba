"""Reconciliation scheduling defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from parcelsync.domain.cities import MAX_CACHE_AGE, check_max_age

from .env import env_float
from .errors import ConfigurationError

DEFAULT_INTERVAL_SECONDS: Final[float] = 60.0


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    city_cache_max_age: timedelta = MAX_CACHE_AGE


def get_reconciliation_config() -> ReconciliationConfig:
    interval = env_float("RECONCILE_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS)
    if interval <= 0:
        raise ConfigurationError("RECONCILE_INTERVAL_SECONDS must be positive")

    max_age_seconds = env_float("CITY_CACHE_MAX_AGE_SECONDS", MAX_CACHE_AGE.total_seconds())
    try:
        max_age = check_max_age(timedelta(seconds=max_age_seconds))
    except ValueError as exc:
        raise ConfigurationError(f"CITY_CACHE_MAX_AGE_SECONDS: {exc}") from exc

    return ReconciliationConfig(interval_seconds=interval, city_cache_max_age=max_age)
