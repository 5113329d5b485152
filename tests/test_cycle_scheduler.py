import datetime as dt
import threading
import time
import unittest

from ecosphere.cycle_scheduler import CycleScheduler
from ecosphere.domain import CycleOutcome, CycleState, EnvironmentalRecord, GreenSpace, WeatherSeries
from ecosphere.errors import AggregationFailed
from ecosphere.heatmap_index import HeatmapIndex
from ecosphere.sample_store import SampleStore
from ecosphere.upload_sink import InMemoryUploadSink, UploadDispatcher


class FakeFetcher:
    def __init__(self, record=None, fail=False):
        self.record = record or EnvironmentalRecord(air_quality_index=42, noise_level=30.0)
        self.fail = fail
        self.calls = []

    def fetch(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.fail:
            raise AggregationFailed({"weather": "down", "air_quality": "down", "green_space": "down", "noise": "no data"})
        return self.record


def fixed_clock():
    return dt.datetime(2024, 6, 1, 14, 30)


class TestCycleScheduler(unittest.TestCase):
    def setUp(self):
        self.store = SampleStore(device_id="dev-1")
        self.heatmap = HeatmapIndex()
        self.sink = InMemoryUploadSink()
        self.uploader = UploadDispatcher(self.sink)

    def tearDown(self):
        self.uploader.shutdown()

    def _scheduler(self, fetcher, period=30.0):
        return CycleScheduler(
            self.store,
            fetcher,
            self.heatmap,
            period_seconds=period,
            uploader=self.uploader,
            clock=fixed_clock,
        )

    def test_empty_batch_skips_without_fetch(self):
        fetcher = FakeFetcher()
        scheduler = self._scheduler(fetcher)

        result = scheduler.run_cycle()

        self.assertEqual(result.outcome, CycleOutcome.SKIPPED_EMPTY)
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(len(self.heatmap), 0)
        self.assertEqual(scheduler.state, CycleState.IDLE)
        self.assertIsNone(scheduler.latest)

    def test_published_cycle_appends_point_and_clears_batch(self):
        fetcher = FakeFetcher()
        scheduler = self._scheduler(fetcher)
        self.store.record_coordinates(10.0, 20.0)
        self.store.record_coordinates(10.5, 20.5)

        result = scheduler.run_cycle(hour=0)

        self.assertEqual(result.outcome, CycleOutcome.PUBLISHED)
        self.assertEqual(result.sample_count, 2)
        self.assertEqual(len(fetcher.calls), 1)
        self.assertIn(fetcher.calls[0], [(10.0, 20.0), (10.5, 20.5)])
        self.assertEqual(self.heatmap.snapshot(), (result.point,))
        self.assertEqual(result.point.score, 1.0)
        self.assertEqual(self.store.size(), 0)
        self.assertIs(scheduler.latest, result)
        self.assertEqual(scheduler.state, CycleState.IDLE)

    def test_hour_defaults_to_clock(self):
        record = EnvironmentalRecord(weather=WeatherSeries.from_hourly({"temperature": [float(h) for h in range(24)]}))
        scheduler = self._scheduler(FakeFetcher(record=record))
        self.store.record_coordinates(1.0, 1.0)
        result = scheduler.run_cycle()
        self.assertEqual(result.hour, 14)
        self.assertEqual(result.point.breakdown.temperature, 14.0)

    def test_aggregation_failure_produces_no_point(self):
        scheduler = self._scheduler(FakeFetcher(fail=True))
        self.store.record_coordinates(1.0, 1.0)

        result = scheduler.run_cycle()

        self.assertEqual(result.outcome, CycleOutcome.AGGREGATION_FAILED)
        self.assertIsNone(result.point)
        self.assertEqual(len(self.heatmap), 0)
        self.assertEqual(self.store.size(), 0)
        self.assertEqual(scheduler.state, CycleState.IDLE)
        self.uploader.shutdown()
        self.assertEqual(self.sink.payloads, [])

    def test_upload_payload_carries_batch_and_record(self):
        record = EnvironmentalRecord(
            air_quality_index=12,
            nearest_green_space=GreenSpace(name="Park", distance_meters=100.0),
        )
        scheduler = self._scheduler(FakeFetcher(record=record))
        self.store.record_coordinates(1.0, 2.0)
        self.store.record_coordinates(3.0, 4.0)

        scheduler.run_cycle()
        self.uploader.shutdown()

        payloads = self.sink.payloads
        self.assertEqual(len(payloads), 1)
        locations = payloads[0]["locations"]
        self.assertEqual(len(locations), 3)
        self.assertEqual(locations[0]["userID"], "dev-1")
        self.assertEqual(locations[-1]["environmentData"]["aqi"], 12)
        self.assertEqual(locations[-1]["environmentData"]["nearestGreenSpace"]["name"], "Park")

    def test_consumers_notified_and_errors_contained(self):
        scheduler = self._scheduler(FakeFetcher())
        seen = []

        def bad_consumer(_result):
            raise RuntimeError("consumer bug")

        scheduler.add_consumer(bad_consumer)
        scheduler.add_consumer(seen.append)
        self.store.record_coordinates(1.0, 1.0)

        result = scheduler.run_cycle()

        self.assertEqual(seen, [result])
        self.assertEqual(len(self.heatmap), 1)

    def test_start_and_stop_are_idempotent(self):
        scheduler = self._scheduler(FakeFetcher(), period=0.05)
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()
        self.assertIs(scheduler._thread, thread)
        self.assertTrue(scheduler.is_running)

        scheduler.stop()
        scheduler.stop()
        self.assertFalse(scheduler.is_running)
        self.assertEqual(scheduler.state, CycleState.STOPPED)

    def test_timer_runs_cycles(self):
        scheduler = self._scheduler(FakeFetcher(), period=0.05)
        self.store.record_coordinates(1.0, 1.0)
        scheduler.start()
        try:
            deadline = time.monotonic() + 2.0
            while len(self.heatmap) == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            scheduler.stop()
        self.assertEqual(len(self.heatmap), 1)

    def test_stop_cancels_pending_tick(self):
        fetcher = FakeFetcher()
        scheduler = self._scheduler(fetcher, period=60.0)
        self.store.record_coordinates(1.0, 1.0)
        scheduler.start()
        started = time.monotonic()
        scheduler.stop()
        self.assertLess(time.monotonic() - started, 1.0)
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(self.store.size(), 1)

    def test_restart_after_stop(self):
        scheduler = self._scheduler(FakeFetcher(), period=0.05)
        scheduler.start()
        scheduler.stop()
        scheduler.start()
        try:
            self.assertTrue(scheduler.is_running)
            self.assertNotEqual(scheduler.state, CycleState.STOPPED)
        finally:
            scheduler.stop()

    def test_restart_during_inflight_cycle_keeps_one_timer(self):
        entered = threading.Event()
        release = threading.Event()

        class BlockingFetcher(FakeFetcher):
            def fetch(self, latitude, longitude):
                entered.set()
                release.wait(5)
                return super().fetch(latitude, longitude)

        scheduler = self._scheduler(BlockingFetcher(), period=0.02)
        self.store.record_coordinates(1.0, 1.0)
        scheduler.start()
        old_thread = scheduler._thread
        try:
            self.assertTrue(entered.wait(2))
            scheduler.stop(wait=False)
            self.assertFalse(scheduler.is_running)
            scheduler.start()
            new_thread = scheduler._thread
            self.assertIsNot(new_thread, old_thread)
        finally:
            release.set()

        old_thread.join(2)
        self.assertFalse(old_thread.is_alive())
        self.assertTrue(new_thread.is_alive())
        live = [t for t in threading.enumerate() if t.name == "cycle-scheduler" and t.is_alive()]
        self.assertEqual(live, [new_thread])
        scheduler.stop()
        self.assertFalse(new_thread.is_alive())

    def test_concurrent_start_launches_one_thread(self):
        scheduler = self._scheduler(FakeFetcher(), period=60.0)
        barrier = threading.Barrier(8)

        def starter():
            barrier.wait()
            scheduler.start()

        starters = [threading.Thread(target=starter) for _ in range(8)]
        for t in starters:
            t.start()
        for t in starters:
            t.join()
        try:
            live = [t for t in threading.enumerate() if t.name == "cycle-scheduler" and t.is_alive()]
            self.assertEqual(len(live), 1)
        finally:
            scheduler.stop()


if __name__ == "__main__":
    unittest.main()
