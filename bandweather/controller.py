"""Foreground controller: the user-facing actions and the flags a UI binds to.

The controller owns no workflow logic of its own. Sync goes through the
interactive SyncOrchestrator; add/remove tile use the band session helpers.
Every action is exclusive: while one is running, or while a background run is
in progress, the others raise SyncInProgressError.
"""
from __future__ import annotations

import datetime as dt
from contextlib import asynccontextmanager
from typing import Callable, Optional

from bandweather import config, local_settings
from bandweather.band import session
from bandweather.band.base import BandClientManager
from bandweather.data_sources import ForecastDataSource
from bandweather.errors import (
    NotPairedError,
    SyncInProgressError,
    SyncOutcome,
    TerminalStatus,
)
from bandweather.layouts import build_tile
from bandweather.location import CachedLocationProvider, LocationProvider
from bandweather.settings_store import SettingsStore
from bandweather.sync import SyncOrchestrator
from bandweather.tasks import BackgroundTaskInstance, BackgroundTaskRegistration, TaskRegistry
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="controller")

Listener = Callable[[str], None]

_ACTION_PROPERTIES = ("can_sync", "can_add_tile", "can_remove_tile")


class ForegroundController:
    def __init__(
        self,
        band_manager: BandClientManager,
        location_provider: LocationProvider,
        registry: TaskRegistry,
        *,
        store: Optional[SettingsStore] = None,
        guard: Optional[session.TileWriteGuard] = None,
        data_source: Optional[ForecastDataSource] = None,
        settings: config.Settings | None = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.settings = settings or config.settings
        self.band_manager = band_manager
        if not isinstance(location_provider, CachedLocationProvider):
            location_provider = CachedLocationProvider(
                location_provider, max_age_seconds=self.settings.location_max_age_seconds
            )
        self.location_provider = location_provider
        self.registry = registry
        self.store = store
        self.guard = guard or session.TileWriteGuard()
        self.data_source = data_source
        self.clock = clock

        self._paired = False
        self._tile_added = False
        self._foreground_busy = False
        self._background_running: set[str] = set()
        self._listeners: list[Listener] = []

        registry.add_progress_listener(self._on_background_progress)
        registry.add_completed_listener(self._on_background_completed)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    def add_listener(self, callback: Listener) -> None:
        """`callback(property_name)` is called for every property that changes."""
        self._listeners.append(callback)

    def _notify(self, *names: str) -> None:
        for name in names:
            for callback in list(self._listeners):
                callback(name)

    @property
    def is_paired(self) -> bool:
        return self._paired

    @is_paired.setter
    def is_paired(self, value: bool) -> None:
        if value != self._paired:
            self._paired = value
            self._notify("is_paired", *_ACTION_PROPERTIES)

    @property
    def is_tile_added(self) -> bool:
        return self._tile_added

    @is_tile_added.setter
    def is_tile_added(self, value: bool) -> None:
        if value != self._tile_added:
            self._tile_added = value
            self._notify("is_tile_added", *_ACTION_PROPERTIES)

    @property
    def is_syncing(self) -> bool:
        return self._foreground_busy or bool(self._background_running)

    def _update_syncing(self, change: Callable[[], None]) -> None:
        before = self.is_syncing
        change()
        if self.is_syncing != before:
            self._notify("is_syncing", *_ACTION_PROPERTIES)

    @property
    def can_sync(self) -> bool:
        return self._paired and self._tile_added and not self.is_syncing

    @property
    def can_remove_tile(self) -> bool:
        return self.can_sync

    @property
    def can_add_tile(self) -> bool:
        return self._paired and not self._tile_added and not self.is_syncing

    @property
    def use_alternate_source(self) -> bool:
        return local_settings.get_use_alternate_source(self.store)

    @use_alternate_source.setter
    def use_alternate_source(self, value: bool) -> None:
        local_settings.set_use_alternate_source(value, self.store)
        self._notify("use_alternate_source", "site_description")

    @property
    def site_description(self) -> str:
        """Menu text for switching endpoints: names the site you would switch to."""
        return "use primary site" if self.use_alternate_source else "use secondary site"

    @property
    def last_sync(self) -> Optional[str]:
        return local_settings.get_last_sync(self.store)

    def snapshot(self) -> dict:
        return {
            "is_paired": self.is_paired,
            "is_tile_added": self.is_tile_added,
            "is_syncing": self.is_syncing,
            "can_sync": self.can_sync,
            "can_add_tile": self.can_add_tile,
            "can_remove_tile": self.can_remove_tile,
            "use_alternate_source": self.use_alternate_source,
            "site_description": self.site_description,
            "background_registered": self.registry.is_registered,
            "last_sync": self.last_sync,
        }

    # ------------------------------------------------------------------
    # Background task listeners
    # ------------------------------------------------------------------

    def _on_background_progress(self, registration: BackgroundTaskRegistration, progress: int) -> None:
        if registration.name not in self._background_running:
            self._update_syncing(lambda: self._background_running.add(registration.name))

    def _on_background_completed(
        self, registration: BackgroundTaskRegistration, instance: BackgroundTaskInstance
    ) -> None:
        self._update_syncing(lambda: self._background_running.discard(registration.name))
        if instance.outcome is not None:
            self._apply_outcome(instance.outcome)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, action: str):
        if self.is_syncing or self.guard.locked or self.registry.is_running:
            logger.info("Rejecting %s: another operation is in progress", action)
            raise SyncInProgressError(f"Cannot {action} while another operation is in progress")
        self._update_syncing(lambda: setattr(self, "_foreground_busy", True))
        try:
            yield
        finally:
            self._update_syncing(lambda: setattr(self, "_foreground_busy", False))

    def _apply_outcome(self, outcome: SyncOutcome) -> None:
        if outcome.status is TerminalStatus.NOT_PAIRED:
            self.is_paired = False
            self.is_tile_added = False
        elif outcome.status is TerminalStatus.TILE_MISSING:
            self.is_paired = True
            self.is_tile_added = False
        elif outcome.status is TerminalStatus.SUCCEEDED:
            self.is_paired = True
            self.is_tile_added = True

    async def refresh(self) -> None:
        """Check the band and update `is_paired` / `is_tile_added` without writing."""
        try:
            bands = await session.discover_bands(self.band_manager)
        except NotPairedError:
            self.is_paired = False
            self.is_tile_added = False
            return
        self.is_paired = True
        async with session.connect(self.band_manager, bands[0]) as client:
            self.is_tile_added = await session.has_tile(client, self.settings.tile_id)

    async def run_sync(self) -> SyncOutcome:
        """Push fresh pages now; the returned message is meant for display."""
        async with self._exclusive("sync"):
            orchestrator = SyncOrchestrator.interactive(
                self.band_manager,
                self.location_provider,
                settings=self.settings,
                store=self.store,
                guard=self.guard,
                data_source=self.data_source,
                clock=self.clock,
            )
            outcome = await orchestrator.run()
            self._apply_outcome(outcome)
            return outcome

    async def add_tile(self) -> SyncOutcome:
        """Register the background triggers and install the tile if it is missing."""
        async with self._exclusive("add tile"):
            try:
                if not self.registry.register():
                    logger.warning("Background access denied; the tile will only update on manual sync")
                bands = await session.discover_bands(self.band_manager)
                self.is_paired = True
                async with session.connect(self.band_manager, bands[0]) as client:
                    if await session.has_tile(client, self.settings.tile_id):
                        self.is_tile_added = True
                        return SyncOutcome(TerminalStatus.SUCCEEDED, "Tile is already installed.")
                    tile = build_tile(self.settings.tile_id)
                    async with self.guard:
                        self.is_tile_added = await session.add_tile(client, tile)
            except NotPairedError as exc:
                self.is_paired = False
                self.is_tile_added = False
                return SyncOutcome(TerminalStatus.NOT_PAIRED, str(exc))
            except Exception as exc:
                logger.exception("Adding the tile failed")
                return SyncOutcome(TerminalStatus.FAILED, str(exc))

            if not self.is_tile_added:
                return SyncOutcome(TerminalStatus.FAILED, "The band did not accept the tile.")
            logger.info("Tile %s added", self.settings.tile_id)
            return SyncOutcome(TerminalStatus.SUCCEEDED, "Tile added.")

    async def remove_tile(self) -> SyncOutcome:
        """Unregister the background triggers and remove the tile from the band."""
        async with self._exclusive("remove tile"):
            try:
                await self.registry.unregister(cancel_running=True)
                bands = await session.discover_bands(self.band_manager)
                self.is_paired = True
                async with session.connect(self.band_manager, bands[0]) as client:
                    async with self.guard:
                        await session.remove_tile(client, self.settings.tile_id)
                self.is_tile_added = False
            except NotPairedError as exc:
                self.is_paired = False
                self.is_tile_added = False
                return SyncOutcome(TerminalStatus.NOT_PAIRED, str(exc))
            except Exception as exc:
                logger.exception("Removing the tile failed")
                return SyncOutcome(TerminalStatus.FAILED, str(exc))

            logger.info("Tile %s removed", self.settings.tile_id)
            return SyncOutcome(TerminalStatus.SUCCEEDED, "Tile removed.")
