"""Ports for querying an external courier's tracking feed."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection

    from parcelsync.domain.model import CityDirectoryEntry, TrackingSnapshot


class TrackingProviderError(RuntimeError):
    """Base class for request-scoped courier failures."""


class ProviderUnavailable(TrackingProviderError):
    """The courier could not be reached or answered with a non-success HTTP status."""


class ProviderError(TrackingProviderError):
    """The courier answered but flagged the request as failed in its payload."""

    def __init__(self, message: str, *, code: object | None = None) -> None:
        super().__init__(message)
        self.code = code


@runtime_checkable
class TrackingProvider(Protocol):
    """Capability every courier integration offers to the reconciliation pass."""

    def track_batch(self, tracking_numbers: Collection[str]) -> list[TrackingSnapshot]:
        """Return snapshots for the numbers the courier recognises.

        Unrecognised numbers are absent from the result rather than reported as errors.
        """
        ...

    def list_cities(self) -> list[CityDirectoryEntry]: ...


__all__ = ["ProviderError", "ProviderUnavailable", "TrackingProvider", "TrackingProviderError"]
