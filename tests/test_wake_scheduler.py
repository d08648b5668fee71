import asyncio
import unittest
from unittest.mock import MagicMock

from notyetred.kernel.clock import Clock
from notyetred.kernel.wake_scheduler import WakeScheduler, earliest_wake
from notyetred.signals.light import CycleBoundary

class FixedWake:
    def __init__(self, timestamp):
        self.timestamp = timestamp

    def next_state_timestamp(self, timestamp):
        return self.timestamp

class Broken:
    def next_state_timestamp(self, timestamp):
        raise RuntimeError("misconfigured light")

class FakeTime:
    def __init__(self, seconds=0.0):
        self.seconds = seconds

    def __call__(self):
        return self.seconds

class TestEarliestWake(unittest.TestCase):
    def test_picks_minimum(self):
        participants = {"a": FixedWake(1_000), "b": FixedWake(5_000), "c": FixedWake(3_000)}
        self.assertEqual(earliest_wake(participants, 0), (1_000, "a"))

    def test_broken_participant_is_skipped(self):
        participants = {"broken": Broken(), "ok": FixedWake(2_000)}
        self.assertEqual(earliest_wake(participants, 0), (2_000, "ok"))

    def test_nobody_reports(self):
        self.assertIsNone(earliest_wake({}, 0))

class TestWakeScheduler(unittest.TestCase):
    def setUp(self):
        self.time = FakeTime()
        self.loop = MagicMock()
        self.scheduler = WakeScheduler(Clock(time_source=self.time), loop=self.loop)

    def test_coalesces_into_one_timer(self):
        self.scheduler.replace_participants({"a": FixedWake(1_000), "b": FixedWake(5_000), "c": FixedWake(3_000)})
        self.assertEqual(self.scheduler.arm(), 1_000)
        self.loop.call_later.assert_called_once_with(1.0, self.scheduler._fire)
        self.assertEqual(self.scheduler.armed_at, 1_000)
        self.assertTrue(self.scheduler.pending)

    def test_rearming_cancels_previous_timer(self):
        self.scheduler.register("a", FixedWake(1_000))
        self.scheduler.arm()
        handle = self.loop.call_later.return_value
        self.scheduler.register("b", FixedWake(500))
        self.assertEqual(self.scheduler.arm(), 500)
        handle.cancel.assert_called_once()
        self.assertEqual(self.loop.call_later.call_count, 2)

    def test_unregister(self):
        self.scheduler.register("a", FixedWake(1_000))
        self.scheduler.register("b", FixedWake(500))
        self.scheduler.unregister("b")
        self.assertEqual(self.scheduler.arm(), 1_000)

    def test_nothing_to_wait_for(self):
        self.assertIsNone(self.scheduler.arm())
        self.assertFalse(self.scheduler.pending)
        self.loop.call_later.assert_not_called()

    def test_past_wake_fires_immediately(self):
        self.time.seconds = 2.0
        self.scheduler.register("a", FixedWake(1_000))
        self.scheduler.arm(now=0)
        self.loop.call_later.assert_called_once_with(0.0, self.scheduler._fire)

    def test_fire_publishes_boundary_and_rearms(self):
        ticks = []
        self.scheduler.subscribe(ticks.append)
        self.scheduler.replace_participants({"fast": CycleBoundary(1_000), "slow": CycleBoundary(3_000)})
        self.scheduler.arm()

        # Timer fired a little early
        self.time.seconds = 0.999
        self.scheduler._fire()

        self.assertEqual(ticks, [1_000])
        self.assertEqual(self.scheduler.armed_at, 2_000)

    def test_published_time_never_goes_back(self):
        self.assertEqual(self.scheduler.publish(5_000), 5_000)
        self.assertEqual(self.scheduler.publish(4_000), 5_000)
        self.assertEqual(self.scheduler.last_published, 5_000)

    def test_observer_errors_are_isolated(self):
        ticks = []

        def broken(now):
            raise RuntimeError("render failed")

        self.scheduler.subscribe(broken)
        self.scheduler.subscribe(ticks.append)
        self.scheduler.publish(1_000)
        self.assertEqual(ticks, [1_000])

    def test_unsubscribe(self):
        ticks = []
        self.scheduler.subscribe(ticks.append)
        self.scheduler.unsubscribe(ticks.append)
        self.scheduler.publish(1_000)
        self.assertEqual(ticks, [])

    def test_cancel(self):
        self.scheduler.register("a", FixedWake(1_000))
        self.scheduler.arm()
        self.scheduler.cancel()
        self.loop.call_later.return_value.cancel.assert_called_once()
        self.assertFalse(self.scheduler.pending)
        self.assertIsNone(self.scheduler.armed_at)

class Soon:
    def next_state_timestamp(self, timestamp):
        return timestamp + 20

class TestWakeSchedulerLoop(unittest.IsolatedAsyncioTestCase):
    async def test_wait_next_resolves_on_tick(self):
        scheduler = WakeScheduler(Clock())
        scheduler.register("soon", Soon())
        armed_at = scheduler.arm()

        first = await asyncio.wait_for(scheduler.wait_next(), timeout=2.0)
        second = await asyncio.wait_for(scheduler.wait_next(), timeout=2.0)
        scheduler.close()

        self.assertGreaterEqual(first, armed_at)
        self.assertGreater(second, first)
        self.assertFalse(scheduler.pending)

    async def test_close_cancels_waiters(self):
        scheduler = WakeScheduler(Clock())
        waiter = asyncio.ensure_future(scheduler.wait_next())
        await asyncio.sleep(0)
        scheduler.close()
        with self.assertRaises(asyncio.CancelledError):
            await waiter

if __name__ == '__main__':
    unittest.main()
