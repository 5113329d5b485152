"""Periodic collect → aggregate → publish cycle.

State machine::

    Idle -> Collecting -> Aggregating -> Publishing -> Idle
               |               |
               +-> Idle        +-> Idle   (empty batch / all sources failed)

    any -> Stopped (explicit shutdown)

`run_cycle()` executes exactly one step and is what both the timer thread and
tests drive. The timer thread waits on an Event between ticks so `stop()`
interrupts the pending wait immediately; a cycle already in flight runs to
completion, bounded by the fetcher's per-source timeout.
"""
from __future__ import annotations

import datetime as dt
import threading
from typing import Callable, List, Optional

from ecosphere.domain import CycleOutcome, CycleResult, CycleState
from ecosphere.environment_fetcher import EnvironmentFetcher
from ecosphere.errors import AggregationFailed
from ecosphere.heatmap_index import HeatmapIndex
from ecosphere.sample_store import SampleStore
from ecosphere.scoring_engine import score_record
from ecosphere.upload_sink.dispatcher import UploadDispatcher
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cycle_scheduler")

CycleConsumer = Callable[[CycleResult], None]


def _local_now() -> dt.datetime:
    return dt.datetime.now().astimezone()


class CycleScheduler:
    """Drive the recurring sampling/enrichment cycle."""

    def __init__(
        self,
        store: SampleStore,
        fetcher: EnvironmentFetcher,
        heatmap: HeatmapIndex,
        *,
        period_seconds: float = 30.0,
        uploader: UploadDispatcher | None = None,
        clock: Callable[[], dt.datetime] = _local_now,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.heatmap = heatmap
        self.period_seconds = period_seconds
        self.uploader = uploader
        self.clock = clock

        self._state = CycleState.IDLE
        self._latest: Optional[CycleResult] = None
        self._consumers: List[CycleConsumer] = []
        self._state_lock = threading.Lock()
        # one cycle at a time, whether triggered by the timer or run_cycle()
        self._cycle_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -- state -----------------------------------------------------------

    @property
    def state(self) -> CycleState:
        with self._state_lock:
            return self._state

    def _transition(self, new_state: CycleState) -> None:
        with self._state_lock:
            # only start() leaves Stopped; a cycle finishing after stop() must not
            if self._state is CycleState.STOPPED:
                return
            previous, self._state = self._state, new_state
        logger.debug("Cycle state change", extra={"from_state": previous.value, "to_state": new_state.value})

    @property
    def latest(self) -> Optional[CycleResult]:
        """Most recent published result, if any."""
        with self._state_lock:
            return self._latest

    @property
    def is_running(self) -> bool:
        """True while the timer is active; a stopped loop may still be finishing its last cycle."""
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def add_consumer(self, consumer: CycleConsumer) -> None:
        """Register a callback invoked with every published result."""
        self._consumers.append(consumer)

    # -- one step --------------------------------------------------------

    def run_cycle(self, hour: int | None = None) -> CycleResult:
        """Run one full cycle synchronously and return what happened."""
        with self._cycle_lock:
            return self._run_cycle_locked(hour)

    def _run_cycle_locked(self, hour: int | None) -> CycleResult:
        self._transition(CycleState.COLLECTING)
        batch = self.store.drain_random_representative()
        if batch is None:
            logger.debug("Empty batch; skipping cycle")
            self._transition(CycleState.IDLE)
            return CycleResult(outcome=CycleOutcome.SKIPPED_EMPTY)

        sample = batch.representative
        self._transition(CycleState.AGGREGATING)
        try:
            record = self.fetcher.fetch(sample.latitude, sample.longitude)
        except AggregationFailed as exc:
            logger.warning(
                "Cycle abandoned: no environmental data",
                extra={"batch_size": len(batch), "failures": exc.failures},
            )
            self._transition(CycleState.IDLE)
            return CycleResult(
                outcome=CycleOutcome.AGGREGATION_FAILED,
                sample_count=len(batch),
                representative=sample,
            )

        self._transition(CycleState.PUBLISHING)
        cycle_hour = self.clock().hour if hour is None else hour
        point = score_record(record, sample.latitude, sample.longitude, cycle_hour)
        self.heatmap.append(point)
        result = CycleResult(
            outcome=CycleOutcome.PUBLISHED,
            sample_count=len(batch),
            representative=sample,
            record=record,
            point=point,
            hour=cycle_hour,
        )
        with self._state_lock:
            self._latest = result

        for consumer in list(self._consumers):
            try:
                consumer(result)
            except Exception:
                logger.exception("Cycle consumer raised; continuing")

        if self.uploader is not None:
            self.uploader.submit(batch, record)

        logger.info(
            "Published heatmap point",
            extra={
                "batch_size": len(batch),
                "score": round(point.score, 3),
                "heatmap_size": len(self.heatmap),
            },
        )
        self._transition(CycleState.IDLE)
        return result

    # -- timer -----------------------------------------------------------

    def _loop(self, stop_event: threading.Event) -> None:
        logger.info("Cycle scheduler started", extra={"period_seconds": self.period_seconds})
        while not stop_event.wait(self.period_seconds):
            try:
                self.run_cycle()
            except Exception:
                # the next tick starts fresh
                logger.exception("Unexpected error during cycle")
        logger.info("Cycle scheduler loop exited")

    def start(self) -> None:
        """Start the periodic timer thread; no-op when already running."""
        with self._lifecycle_lock:
            if self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set():
                return
            # a fresh event per run: a previous loop still finishing its cycle keeps
            # seeing its own set event and exits
            self._stop_event = threading.Event()
            with self._state_lock:
                self._state = CycleState.IDLE
            self._thread = threading.Thread(
                target=self._loop,
                args=(self._stop_event,),
                name="cycle-scheduler",
                daemon=True,
            )
            self._thread.start()

    def stop(self, wait: bool = True, timeout: float | None = None) -> None:
        """Cancel the pending tick and move to Stopped; no-op when already stopped."""
        with self._lifecycle_lock:
            if self._stop_event.is_set() and self.state is CycleState.STOPPED:
                return
            self._stop_event.set()
            thread = self._thread
            self._transition(CycleState.STOPPED)
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Cycle scheduler stopped")
