"""Error taxonomy and terminal sync statuses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MISSING_MANIFEST_RESOURCE = "MissingManifestResource"


class BandWeatherError(Exception):
    """Base class for every error raised by this package."""


class NotPairedError(BandWeatherError):
    """No paired band could be found."""

    def __init__(self, message: str = "No paired band was found.") -> None:
        super().__init__(message)


class TileMissingError(BandWeatherError):
    """The band is paired but the weather tile is not installed."""

    def __init__(self, message: str = "The Band Weather tile is not installed on the band.") -> None:
        super().__init__(message)


class SyncCancelledError(BandWeatherError):
    """The cancellation token was observed between two workflow states."""

    def __init__(self, message: str = "The sync was cancelled.") -> None:
        super().__init__(message)


class ForecastUnavailableError(BandWeatherError):
    """The weather request failed or its body could not be decoded."""


class LocationUnavailableError(BandWeatherError):
    """No coordinate (and no postal code fallback) was available."""

    def __init__(self, message: str = "Unable to determine the current location.") -> None:
        super().__init__(message)


class BandIOError(BandWeatherError):
    """I/O failure reported by the band SDK (connection lost, write rejected, ...)."""

    @property
    def is_missing_manifest_resource(self) -> bool:
        """The SDK raises this after a tile add that actually succeeded."""
        return MISSING_MANIFEST_RESOURCE in str(self)


class SyncInProgressError(BandWeatherError):
    """A foreground action was requested while another one is running."""

    def __init__(self, message: str = "A sync is already in progress.") -> None:
        super().__init__(message)


class TerminalStatus(str, Enum):
    """How a sync, add-tile or remove-tile run ended."""
    NOT_PAIRED = "not_paired"
    TILE_MISSING = "tile_missing"
    CANCELLED = "cancelled"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class SyncOutcome:
    """Terminal status plus the human-readable message that gets persisted."""
    status: TerminalStatus
    message: str

    @property
    def succeeded(self) -> bool:
        return self.status is TerminalStatus.SUCCEEDED
