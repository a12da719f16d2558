"""Background task registration and the shared background sync entry point.

Two registrations drive unattended syncs:

    BandWeatherTimerTask    every `timer_freshness_minutes` (32 by default)
    BandWeatherSystemTask   whenever the local time zone changes

Both call the same entry point with a BackgroundTaskInstance. The instance
carries the cancellation token, a progress value and deferrals: a run is only
considered complete once every deferral it handed out has been completed.
Registrations are owned by a TaskRegistry created and torn down by the
application lifecycle (see bandweather.main).
"""
from __future__ import annotations

import asyncio
import datetime as dt
from enum import Enum
from typing import Awaitable, Callable, Optional

from bandweather import config, constants
from bandweather.band.base import BandClientManager
from bandweather.band.session import TileWriteGuard
from bandweather.data_sources import ForecastDataSource
from bandweather.errors import SyncOutcome
from bandweather.location import LocationProvider
from bandweather.settings_store import SettingsStore
from bandweather.sync import CancellationToken, SyncOrchestrator
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="tasks")

EntryPoint = Callable[["BackgroundTaskInstance"], Awaitable[None]]
ProgressListener = Callable[["BackgroundTaskRegistration", int], None]
CompletedListener = Callable[["BackgroundTaskRegistration", "BackgroundTaskInstance"], None]


class Deferral:
    """Signals that asynchronous work started by a task is still in flight."""

    def __init__(self) -> None:
        self._done = asyncio.Event()

    @property
    def completed(self) -> bool:
        return self._done.is_set()

    def complete(self) -> None:
        self._done.set()

    async def wait(self) -> None:
        await self._done.wait()


class BackgroundTaskInstance:
    """One invocation of a registered task."""

    def __init__(self, name: str, on_progress: Optional[Callable[[int], None]] = None) -> None:
        self.name = name
        self.token = CancellationToken()
        self.progress = 0
        self.outcome: Optional[SyncOutcome] = None
        self._deferrals: list[Deferral] = []
        self._on_progress = on_progress

    def get_deferral(self) -> Deferral:
        deferral = Deferral()
        self._deferrals.append(deferral)
        return deferral

    def set_progress(self, value: int) -> None:
        self.progress = value
        if self._on_progress is not None:
            self._on_progress(value)

    def cancel(self, reason: str) -> None:
        self.token.cancel(reason)

    async def wait_for_deferrals(self) -> None:
        for deferral in list(self._deferrals):
            await deferral.wait()


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class TimeTrigger:
    """Fires every `freshness_minutes`."""

    def __init__(self, freshness_minutes: int, one_shot: bool = False) -> None:
        if freshness_minutes <= 0:
            raise ValueError("freshness_minutes must be positive")
        self.freshness_minutes = freshness_minutes
        self.one_shot = one_shot

    async def wait(self) -> None:
        await asyncio.sleep(self.freshness_minutes * 60)

    def __repr__(self) -> str:
        return f"TimeTrigger({self.freshness_minutes}min)"


class SystemTriggerType(str, Enum):
    TIME_ZONE_CHANGE = "time_zone_change"


def local_timezone_key() -> tuple:
    """Zone name and UTC offset of the local clock."""
    now = dt.datetime.now().astimezone()
    return now.tzname(), now.utcoffset()


class SystemTrigger:
    """Fires when a polled system property changes (currently the time zone)."""

    def __init__(
        self,
        trigger_type: SystemTriggerType,
        *,
        poll_seconds: float = 60.0,
        one_shot: bool = False,
        read_zone: Callable[[], object] = local_timezone_key,
    ) -> None:
        self.trigger_type = trigger_type
        self.poll_seconds = poll_seconds
        self.one_shot = one_shot
        self._read_zone = read_zone
        self._last = read_zone()

    async def wait(self) -> None:
        while True:
            await asyncio.sleep(self.poll_seconds)
            current = self._read_zone()
            if current != self._last:
                logger.info("System trigger %s fired: %s -> %s", self.trigger_type.value, self._last, current)
                self._last = current
                return

    def __repr__(self) -> str:
        return f"SystemTrigger({self.trigger_type.value})"


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------


class BackgroundTaskRegistration:
    """A named trigger bound to an entry point. Never runs two instances at once."""

    def __init__(self, name: str, trigger, entry_point: EntryPoint) -> None:
        self.name = name
        self.trigger = trigger
        self.entry_point = entry_point
        self.progress_listeners: list[ProgressListener] = []
        self.completed_listeners: list[CompletedListener] = []
        self.current: Optional[BackgroundTaskInstance] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._stopping = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return self.current is not None

    def start(self) -> None:
        """Begin waiting on the trigger. Requires a running event loop."""
        self._stopping = False
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.get_running_loop().create_task(self._loop(), name=f"trigger:{self.name}")

    async def _loop(self) -> None:
        while not self._stopping:
            await self.trigger.wait()
            if self._stopping:
                return
            await self.fire()
            if self.trigger.one_shot:
                return

    def _notify_progress(self, value: int) -> None:
        for listener in list(self.progress_listeners):
            listener(self, value)

    async def fire(self) -> Optional[BackgroundTaskInstance]:
        """Run the entry point once; skipped if an instance is already running."""
        if self._stopping:
            logger.info("Task %s is being unregistered; skipping trigger", self.name)
            return None
        if self.current is not None:
            logger.info("Task %s is still running; skipping trigger", self.name)
            return None
        instance = BackgroundTaskInstance(self.name, on_progress=self._notify_progress)
        self.current = instance
        self._idle.clear()
        logger.info("Running background task %s", self.name)
        try:
            await self.entry_point(instance)
            await instance.wait_for_deferrals()
        except Exception:
            logger.exception("Background task %s raised", self.name)
        finally:
            self.current = None
        try:
            for listener in list(self.completed_listeners):
                listener(self, instance)
        finally:
            self._idle.set()
        return instance

    async def unregister(self, cancel_task: bool = True) -> None:
        """Stop the trigger; optionally cancel the running instance cooperatively.

        An in-flight run is always allowed to reach its terminal status (and
        notify completion) before the trigger loop is torn down.
        """
        self._stopping = True
        if cancel_task and self.current is not None:
            self.current.cancel(f"{self.name} unregistered")
        if self.current is not None:
            await self._idle.wait()
        if self._loop_task is not None and not self._loop_task.done():
            task = self._loop_task
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        logger.info("Unregistered background task %s", self.name)


class TaskRegistry:
    """Owns the timer and time-zone registrations for one process."""

    def __init__(self, entry_point: EntryPoint, *, settings: config.Settings | None = None) -> None:
        self.entry_point = entry_point
        self.settings = settings or config.settings
        self.registrations: dict[str, BackgroundTaskRegistration] = {}
        self._progress_listeners: list[ProgressListener] = []
        self._completed_listeners: list[CompletedListener] = []

    @property
    def is_registered(self) -> bool:
        return (
            constants.TIMER_TASK_NAME in self.registrations
            and constants.SYSTEM_TASK_NAME in self.registrations
        )

    @property
    def is_running(self) -> bool:
        return any(r.is_running for r in self.registrations.values())

    def request_access(self) -> bool:
        """Whether this process may run unattended work at all."""
        return self.settings.background_access_allowed

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)
        for registration in self.registrations.values():
            registration.progress_listeners.append(listener)

    def add_completed_listener(self, listener: CompletedListener) -> None:
        self._completed_listeners.append(listener)
        for registration in self.registrations.values():
            registration.completed_listeners.append(listener)

    def _register(self, name: str, trigger) -> BackgroundTaskRegistration:
        registration = BackgroundTaskRegistration(name, trigger, self.entry_point)
        registration.progress_listeners.extend(self._progress_listeners)
        registration.completed_listeners.extend(self._completed_listeners)
        registration.start()
        self.registrations[name] = registration
        logger.info("Registered background task %s (%r)", name, trigger)
        return registration

    def register(self) -> bool:
        """Register both triggers if missing. Returns False when access is denied."""
        if self.is_registered:
            return True
        if not self.request_access():
            logger.warning("Background access denied; tasks not registered")
            return False
        if constants.TIMER_TASK_NAME not in self.registrations:
            self._register(constants.TIMER_TASK_NAME, TimeTrigger(self.settings.timer_freshness_minutes))
        if constants.SYSTEM_TASK_NAME not in self.registrations:
            self._register(
                constants.SYSTEM_TASK_NAME,
                SystemTrigger(SystemTriggerType.TIME_ZONE_CHANGE, poll_seconds=self.settings.timezone_poll_seconds),
            )
        return self.is_registered

    async def unregister(self, cancel_running: bool = True) -> None:
        """Remove every registration, cancelling in-flight runs by default."""
        registrations, self.registrations = self.registrations, {}
        for registration in registrations.values():
            await registration.unregister(cancel_task=cancel_running)


class BackgroundSyncTask:
    """Entry point shared by both registrations: one unattended sync per call."""

    def __init__(
        self,
        band_manager: BandClientManager,
        location_provider: LocationProvider,
        *,
        store: Optional[SettingsStore] = None,
        guard: Optional[TileWriteGuard] = None,
        data_source: Optional[ForecastDataSource] = None,
        settings: config.Settings | None = None,
    ) -> None:
        self.band_manager = band_manager
        self.location_provider = location_provider
        self.store = store
        self.guard = guard or TileWriteGuard()
        self.data_source = data_source
        self.settings = settings or config.settings

    async def __call__(self, instance: BackgroundTaskInstance) -> None:
        await run_background_sync(
            instance,
            self.band_manager,
            self.location_provider,
            store=self.store,
            guard=self.guard,
            data_source=self.data_source,
            settings=self.settings,
        )


async def run_background_sync(
    instance: BackgroundTaskInstance,
    band_manager: BandClientManager,
    location_provider: LocationProvider,
    *,
    store: Optional[SettingsStore] = None,
    guard: Optional[TileWriteGuard] = None,
    data_source: Optional[ForecastDataSource] = None,
    settings: config.Settings | None = None,
) -> SyncOutcome:
    """Run one unattended sync for `instance`, holding a deferral until it ends."""
    deferral = instance.get_deferral()
    try:
        orchestrator = SyncOrchestrator.background(
            band_manager,
            location_provider,
            settings=settings,
            store=store,
            guard=guard,
            data_source=data_source,
        )
        instance.outcome = await orchestrator.run(instance.token, on_progress=instance.set_progress)
        return instance.outcome
    finally:
        deferral.complete()
