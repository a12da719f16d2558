"""The sync workflow: location -> forecast -> band -> tile pages -> status.

States run strictly in order::

    start -> locating -> forecasting -> discovering_device -> connecting
          -> listing_tiles -> building_pages -> clearing_pages
          -> setting_pages -> done

After each state the orchestrator reports progress and checks the
cancellation token; a cancelled run skips straight to ``done``. Every run ends
in exactly one TerminalStatus and persists its message to local settings. The
band connection is closed on every exit path.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

from bandweather import config, constants, local_settings
from bandweather.band.base import BandClientManager
from bandweather.band.session import TileWriteGuard, connect, discover_bands, has_tile
from bandweather.data_sources import ForecastDataSource, build_data_source
from bandweather.errors import (
    LocationUnavailableError,
    NotPairedError,
    SyncCancelledError,
    SyncOutcome,
    TerminalStatus,
    TileMissingError,
)
from bandweather.location import LocationProvider, locate
from bandweather.settings_store import SettingsStore
from bandweather.tiles import generate_page_data
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="sync")

ProgressCallback = Callable[[int], None]

STATUS_TIME_FORMAT = "%m/%d/%Y %I:%M:%S %p"


class SyncState(str, Enum):
    START = "start"
    LOCATING = "locating"
    FORECASTING = "forecasting"
    DISCOVERING_DEVICE = "discovering_device"
    CONNECTING = "connecting"
    LISTING_TILES = "listing_tiles"
    BUILDING_PAGES = "building_pages"
    CLEARING_PAGES = "clearing_pages"
    SETTING_PAGES = "setting_pages"
    DONE = "done"


# Advisory progress reported once a state has finished.
PROGRESS = {
    SyncState.LOCATING: 10,
    SyncState.FORECASTING: 20,
    SyncState.DISCOVERING_DEVICE: 30,
    SyncState.CONNECTING: 40,
    SyncState.LISTING_TILES: 50,
    SyncState.BUILDING_PAGES: 60,
    SyncState.CLEARING_PAGES: 80,
    SyncState.SETTING_PAGES: 100,
}


class CancellationToken:
    """Cooperative cancellation flag, checked between workflow states."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason
            logger.info("Cancellation requested%s", f": {reason}" if reason else "")

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SyncCancelledError()


@dataclass
class SyncOptions:
    """Knobs that differ between the unattended and the interactive run."""
    label: str = "sync"
    background: bool = False
    connected_only: bool = False
    connect_attempts: int = 1
    connect_delay_seconds: float = 0.0
    location_timeout_seconds: float = 15.0
    location_accuracy_meters: int = 5000
    postal_code: Optional[str] = None
    tile_id: UUID = constants.TILE_ID

    @classmethod
    def background_run(cls, settings: config.Settings | None = None) -> "SyncOptions":
        """Bounded connect retry: Bluetooth is often still waking up in the background."""
        settings = settings or config.settings
        return cls(
            label="background sync",
            background=True,
            connected_only=True,
            connect_attempts=settings.connect_attempts,
            connect_delay_seconds=settings.connect_delay_ms / 1000.0,
            location_timeout_seconds=settings.background_location_timeout_seconds,
            location_accuracy_meters=settings.location_accuracy_meters,
            postal_code=settings.postal_code,
            tile_id=settings.tile_id,
        )

    @classmethod
    def interactive_run(cls, settings: config.Settings | None = None) -> "SyncOptions":
        """Single connect attempt; the user can simply press sync again."""
        settings = settings or config.settings
        return cls(
            label="sync",
            location_timeout_seconds=settings.location_timeout_seconds,
            location_accuracy_meters=settings.location_accuracy_meters,
            postal_code=settings.postal_code,
            tile_id=settings.tile_id,
        )


@dataclass
class SyncRun:
    """Bookkeeping for one run, kept for logging and tests."""
    states: list[SyncState] = field(default_factory=list)
    progress: list[int] = field(default_factory=list)


class SyncOrchestrator:
    """Sequence the collaborators for one sync and record the outcome."""

    def __init__(
        self,
        band_manager: BandClientManager,
        location_provider: LocationProvider,
        *,
        data_source: Optional[ForecastDataSource] = None,
        store: Optional[SettingsStore] = None,
        guard: Optional[TileWriteGuard] = None,
        options: Optional[SyncOptions] = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.band_manager = band_manager
        self.location_provider = location_provider
        self.data_source = data_source
        self.store = store
        self.guard = guard or TileWriteGuard()
        self.options = options or SyncOptions()
        self.clock = clock
        self.state = SyncState.START
        self.last_run: Optional[SyncRun] = None
        self._progress = 0
        self._on_progress: Optional[ProgressCallback] = None

    @classmethod
    def background(cls, band_manager, location_provider, *, settings: config.Settings | None = None, **kwargs):
        return cls(band_manager, location_provider, options=SyncOptions.background_run(settings), **kwargs)

    @classmethod
    def interactive(cls, band_manager, location_provider, *, settings: config.Settings | None = None, **kwargs):
        return cls(band_manager, location_provider, options=SyncOptions.interactive_run(settings), **kwargs)

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _enter(self, state: SyncState) -> None:
        self.state = state
        self.last_run.states.append(state)
        logger.debug("Sync state -> %s", state.value)

    def _report(self, value: int) -> None:
        value = max(value, self._progress)
        self._progress = value
        self.last_run.progress.append(value)
        if self._on_progress is not None:
            self._on_progress(value)

    def _finish(self, token: CancellationToken) -> None:
        """Close out the current state: report progress, then honor cancellation."""
        self._report(PROGRESS[self.state])
        token.raise_if_cancelled()

    def _resolve_data_source(self) -> ForecastDataSource:
        if self.data_source is not None:
            return self.data_source
        return build_data_source(use_alternate_source=local_settings.get_use_alternate_source(self.store))

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def run(
        self,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncOutcome:
        """Run the workflow once and return its terminal outcome."""
        token = token or CancellationToken()
        self.last_run = SyncRun()
        self._progress = 0
        self._on_progress = on_progress
        self.state = SyncState.START
        label = self.options.label

        try:
            token.raise_if_cancelled()
            await self._run(token)
            outcome = SyncOutcome(
                TerminalStatus.SUCCEEDED,
                f"Successful {label} occurred at {self._timestamp()}.",
            )
        except SyncCancelledError:
            outcome = SyncOutcome(TerminalStatus.CANCELLED, f"Cancelled {label} at {self._timestamp()}.")
        except NotPairedError as exc:
            outcome = SyncOutcome(TerminalStatus.NOT_PAIRED, f"Skipped {label} at {self._timestamp()}: {exc}")
        except TileMissingError as exc:
            outcome = SyncOutcome(TerminalStatus.TILE_MISSING, f"Skipped {label} at {self._timestamp()}: {exc}")
        except Exception as exc:
            logger.exception("Sync failed in state %s", self.state.value)
            outcome = SyncOutcome(
                TerminalStatus.FAILED,
                f"Failed {label} occurred at {self._timestamp()}:\n{exc}",
            )
        finally:
            failed_in = self.state
            self._enter(SyncState.DONE)

        logger.info(
            "Sync finished: %s (last state %s, progress %d)",
            outcome.status.value, failed_in.value, self._progress,
        )
        try:
            local_settings.set_last_sync(outcome.message, self.store)
        except Exception:
            logger.exception("Failed to persist sync status")
        return outcome

    async def _run(self, token: CancellationToken) -> None:
        opts = self.options

        self._enter(SyncState.LOCATING)
        point = await locate(
            self.location_provider,
            timeout_seconds=opts.location_timeout_seconds,
            desired_accuracy_meters=opts.location_accuracy_meters,
        )
        self._finish(token)
        if point is None and not opts.postal_code:
            raise LocationUnavailableError()

        self._enter(SyncState.FORECASTING)
        data_source = self._resolve_data_source()
        if point is not None:
            forecast = await data_source.get_forecast(latitude=point.latitude, longitude=point.longitude)
        else:
            logger.info("No location fix; using the configured postal code")
            forecast = await data_source.get_forecast(postal_code=opts.postal_code)
        self._finish(token)

        self._enter(SyncState.DISCOVERING_DEVICE)
        bands = await discover_bands(
            self.band_manager, connected_only=opts.connected_only, background=opts.background
        )
        self._finish(token)

        self._enter(SyncState.CONNECTING)
        async with connect(
            self.band_manager,
            bands[0],
            attempts=opts.connect_attempts,
            delay_seconds=opts.connect_delay_seconds,
        ) as client:
            self._finish(token)

            self._enter(SyncState.LISTING_TILES)
            if not await has_tile(client, opts.tile_id):
                raise TileMissingError()
            self._finish(token)

            self._enter(SyncState.BUILDING_PAGES)
            pages = generate_page_data(forecast, now=self.clock(), tile_id=opts.tile_id)
            self._finish(token)

            async with self.guard:
                self._enter(SyncState.CLEARING_PAGES)
                await client.tile_manager.remove_pages(opts.tile_id)
                self._finish(token)

                self._enter(SyncState.SETTING_PAGES)
                await client.tile_manager.set_pages(opts.tile_id, pages)
                self._report(PROGRESS[SyncState.SETTING_PAGES])

    def _timestamp(self) -> str:
        return self.clock().strftime(STATUS_TIME_FORMAT)
