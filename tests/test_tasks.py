import asyncio
import unittest

from bandweather import constants, local_settings
from bandweather.band import InMemoryBandClientManager
from bandweather.band.base import BandInfo
from bandweather.config import Settings
from bandweather.data_sources.wunderground_client import ForecastData
from bandweather.errors import TerminalStatus
from bandweather.layouts import build_tile
from bandweather.location import FixedLocationProvider, Geopoint
from bandweather.settings_store import InMemorySettingsStore
from bandweather.tasks import (
    BackgroundSyncTask,
    BackgroundTaskInstance,
    BackgroundTaskRegistration,
    SystemTrigger,
    SystemTriggerType,
    TaskRegistry,
    TimeTrigger,
    run_background_sync,
)

BAND = BandInfo("Band 2", "00:11:22:33:44:55")


class ImmediateTrigger:
    def __init__(self, one_shot=True):
        self.one_shot = one_shot

    async def wait(self):
        return None


class FakeDataSource:
    async def get_forecast(self, **kwargs):
        return ForecastData(city="Austin", temp=72.0, weather="Clear")


class SlowLocationProvider:
    enabled = True

    async def request_position(self, desired_accuracy_meters=5000):
        await asyncio.sleep(0.3)
        return Geopoint(30.27, -97.74)


class TestBackgroundTaskInstance(unittest.IsolatedAsyncioTestCase):
    async def test_waits_for_every_deferral(self):
        instance = BackgroundTaskInstance("t")
        first = instance.get_deferral()
        second = instance.get_deferral()
        first.complete()

        waiter = asyncio.create_task(instance.wait_for_deferrals())
        await asyncio.sleep(0)
        self.assertFalse(waiter.done())
        second.complete()
        await asyncio.wait_for(waiter, timeout=1)
        self.assertTrue(second.completed)

    async def test_progress_forwarded(self):
        seen = []
        instance = BackgroundTaskInstance("t", on_progress=seen.append)
        instance.set_progress(30)
        self.assertEqual(instance.progress, 30)
        self.assertEqual(seen, [30])


class TestTriggers(unittest.IsolatedAsyncioTestCase):
    def test_time_trigger_requires_positive_interval(self):
        with self.assertRaises(ValueError):
            TimeTrigger(0)

    async def test_system_trigger_fires_on_time_zone_change(self):
        values = iter([("CST", -6), ("CST", -6), ("EST", -5)])
        trigger = SystemTrigger(
            SystemTriggerType.TIME_ZONE_CHANGE, poll_seconds=0, read_zone=lambda: next(values)
        )
        await asyncio.wait_for(trigger.wait(), timeout=1)


class TestBackgroundTaskRegistration(unittest.IsolatedAsyncioTestCase):
    async def test_fire_notifies_progress_and_completion(self):
        progress, completed = [], []

        async def entry(instance):
            instance.set_progress(50)
            instance.set_progress(100)

        registration = BackgroundTaskRegistration("t", ImmediateTrigger(), entry)
        registration.progress_listeners.append(lambda reg, value: progress.append(value))
        registration.completed_listeners.append(lambda reg, inst: completed.append(inst))

        instance = await registration.fire()

        self.assertEqual(progress, [50, 100])
        self.assertEqual(completed, [instance])
        self.assertFalse(registration.is_running)

    async def test_runs_never_overlap(self):
        release = asyncio.Event()
        calls = []

        async def entry(instance):
            calls.append(instance)
            await release.wait()

        registration = BackgroundTaskRegistration("t", ImmediateTrigger(), entry)
        first = asyncio.create_task(registration.fire())
        await asyncio.sleep(0)
        self.assertTrue(registration.is_running)
        self.assertIsNone(await registration.fire())
        release.set()
        await first
        self.assertEqual(len(calls), 1)

    async def test_entry_point_errors_are_contained(self):
        async def entry(instance):
            raise RuntimeError("boom")

        registration = BackgroundTaskRegistration("t", ImmediateTrigger(), entry)
        instance = await registration.fire()
        self.assertIsNotNone(instance)
        self.assertFalse(registration.is_running)

    async def test_one_shot_trigger_loop(self):
        calls = []

        async def entry(instance):
            calls.append(instance.name)

        registration = BackgroundTaskRegistration("t", ImmediateTrigger(one_shot=True), entry)
        registration.start()
        await asyncio.wait_for(registration._loop_task, timeout=1)
        self.assertEqual(calls, ["t"])


class TestTaskRegistry(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.registry = None

    async def asyncTearDown(self):
        if self.registry is not None:
            await self.registry.unregister()

    async def _noop(self, instance):
        return None

    async def test_access_denied(self):
        self.registry = TaskRegistry(self._noop, settings=Settings(background_access_allowed=False))
        self.assertFalse(self.registry.register())
        self.assertFalse(self.registry.is_registered)

    async def test_register_and_unregister(self):
        self.registry = TaskRegistry(self._noop, settings=Settings())
        self.assertTrue(self.registry.register())
        self.assertTrue(self.registry.is_registered)
        self.assertEqual(
            set(self.registry.registrations), {constants.TIMER_TASK_NAME, constants.SYSTEM_TASK_NAME}
        )
        timer = self.registry.registrations[constants.TIMER_TASK_NAME].trigger
        self.assertEqual(timer.freshness_minutes, 32)
        # Registering twice is a no-op.
        self.assertTrue(self.registry.register())

        await self.registry.unregister()
        self.assertFalse(self.registry.is_registered)

    async def test_unregister_cancels_running_instance(self):
        started = asyncio.Event()
        observed = []

        async def entry(instance):
            started.set()
            while not instance.token.is_cancelled:
                await asyncio.sleep(0.01)
            observed.append(instance.token.reason)

        self.registry = TaskRegistry(entry, settings=Settings())
        self.registry.register()
        registration = self.registry.registrations[constants.TIMER_TASK_NAME]
        run = asyncio.create_task(registration.fire())
        await asyncio.wait_for(started.wait(), timeout=1)

        await self.registry.unregister(cancel_running=True)
        await asyncio.wait_for(run, timeout=1)
        self.assertEqual(observed, [f"{constants.TIMER_TASK_NAME} unregistered"])

    async def test_listeners_apply_to_later_registrations(self):
        seen = []
        self.registry = TaskRegistry(self._noop, settings=Settings())
        self.registry.add_completed_listener(lambda reg, inst: seen.append(reg.name))
        self.registry.register()
        await self.registry.registrations[constants.SYSTEM_TASK_NAME].fire()
        self.assertEqual(seen, [constants.SYSTEM_TASK_NAME])


class TestRunBackgroundSync(unittest.IsolatedAsyncioTestCase):
    async def test_runs_background_sync_and_completes_deferral(self):
        manager = InMemoryBandClientManager([BAND])
        manager.install_tile(BAND, build_tile())
        store = InMemorySettingsStore()
        instance = BackgroundTaskInstance(constants.TIMER_TASK_NAME)

        outcome = await run_background_sync(
            instance,
            manager,
            FixedLocationProvider(30.27, -97.74),
            store=store,
            data_source=FakeDataSource(),
            settings=Settings(connect_delay_ms=0),
        )

        self.assertEqual(outcome.status, TerminalStatus.SUCCEEDED)
        self.assertIs(instance.outcome, outcome)
        self.assertEqual(instance.progress, 100)
        await asyncio.wait_for(instance.wait_for_deferrals(), timeout=1)
        self.assertTrue(local_settings.get_last_sync(store).startswith("Successful background sync occurred at"))

    async def test_not_paired_in_background(self):
        store = InMemorySettingsStore()
        task = BackgroundSyncTask(
            InMemoryBandClientManager(),
            FixedLocationProvider(30.27, -97.74),
            store=store,
            data_source=FakeDataSource(),
            settings=Settings(),
        )
        registration = BackgroundTaskRegistration(constants.SYSTEM_TASK_NAME, ImmediateTrigger(), task)
        instance = await registration.fire()
        self.assertEqual(instance.outcome.status, TerminalStatus.NOT_PAIRED)
        self.assertIn("Skipped background sync", local_settings.get_last_sync(store))


class TestUnregisterDuringRun(unittest.IsolatedAsyncioTestCase):
    async def test_unregister_inside_trigger_loop_records_cancelled(self):
        manager = InMemoryBandClientManager([BAND])
        manager.install_tile(BAND, build_tile())
        store = InMemorySettingsStore()
        task = BackgroundSyncTask(
            manager,
            SlowLocationProvider(),
            store=store,
            data_source=FakeDataSource(),
            settings=Settings(connect_delay_ms=0),
        )
        completed = []
        registration = BackgroundTaskRegistration(
            constants.TIMER_TASK_NAME, ImmediateTrigger(one_shot=False), task
        )
        registration.completed_listeners.append(lambda reg, inst: completed.append(inst))

        registration.start()
        for _ in range(100):
            if registration.is_running:
                break
            await asyncio.sleep(0.01)
        self.assertTrue(registration.is_running)

        await asyncio.wait_for(registration.unregister(cancel_task=True), timeout=2)

        self.assertTrue(local_settings.get_last_sync(store).startswith("Cancelled background sync"))
        self.assertEqual(len(completed), 1)
        self.assertEqual(completed[0].outcome.status, TerminalStatus.CANCELLED)
        self.assertFalse(registration.is_running)
        self.assertEqual(manager.calls, [])


if __name__ == "__main__":
    unittest.main()
