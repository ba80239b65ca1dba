"""Leopard courier configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import Final

from .env import env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

LEOPARD_PRODUCTION_URL: Final[str] = "https://merchantapi.leopardscourier.com/api"
LEOPARD_STAGING_URL: Final[str] = "https://merchantapistaging.leopardscourier.com/api"
LEOPARD_CONNECT_TIMEOUT_SECONDS: Final[float] = 5.0
LEOPARD_TIMEOUT_SECONDS: Final[float] = 20.0
LEOPARD_DEADLINE_SECONDS: Final[float] = 60.0
# Leopard reports activity in Pakistan Standard Time, which has no DST.
DEFAULT_UTC_OFFSET_HOURS: Final[float] = 5.0


@dataclass(frozen=True)
class LeopardConfig:
    """Holds Leopard merchant API credentials and transport settings."""

    api_key: str
    api_password: str
    resilience: ResilienceConfig
    activity_timezone: timezone = timezone(timedelta(hours=DEFAULT_UTC_OFFSET_HOURS))

    @property
    def base_url(self) -> str:
        return self.resilience.base_url or LEOPARD_PRODUCTION_URL


def leopard_base_url(environment: str | None) -> str:
    env = (environment or "production").lower()
    if env == "production":
        return LEOPARD_PRODUCTION_URL
    if env == "staging":
        return LEOPARD_STAGING_URL
    raise ConfigurationError(f"LEOPARD_ENV must be 'production' or 'staging', got {environment!r}")


def default_leopard_resilience(base_url: str = LEOPARD_PRODUCTION_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="leopard",
        base_url=base_url,
        timeout_seconds=LEOPARD_TIMEOUT_SECONDS,
        connect_timeout_seconds=LEOPARD_CONNECT_TIMEOUT_SECONDS,
        deadline_seconds=LEOPARD_DEADLINE_SECONDS,
        retry=RetryPolicy(total=2, backoff_factor=0.3),
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        default_headers={"Accept": "application/json"},
    )


def get_activity_timezone() -> timezone:
    """Fixed offset Leopard activity timestamps are reported in."""

    offset_hours = env_float("LEOPARD_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS)
    if not -24 < offset_hours < 24:
        raise ConfigurationError("LEOPARD_UTC_OFFSET_HOURS must be within (-24, 24)")
    return timezone(timedelta(hours=offset_hours))


def get_leopard_config(*, resilience: ResilienceConfig | None = None) -> LeopardConfig:
    values = require_env_vars(("LEOPARD_API_KEY", "LEOPARD_API_PASSWORD"))
    base_url = leopard_base_url(optional_env_var("LEOPARD_ENV"))
    return LeopardConfig(
        api_key=values["LEOPARD_API_KEY"],
        api_password=values["LEOPARD_API_PASSWORD"],
        resilience=resilience or default_leopard_resilience(base_url),
        activity_timezone=get_activity_timezone(),
    )
