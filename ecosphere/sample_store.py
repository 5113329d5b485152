"""In-memory batch of raw location samples, drained once per cycle."""

from __future__ import annotations

import datetime as dt
import random
import threading
from typing import List, Optional

from ecosphere.domain import DrainedBatch, Sample
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="sample_store")


class SampleStore:
    """Thread-safe, append-only sample batch.

    `record` is called by the sensor producer while the scheduler drains from
    its own thread; both go through one lock so a sample lands either in the
    batch being drained or in the next one, never both and never neither.
    """

    def __init__(self, *, device_id: str | None = None, rng: random.Random | None = None) -> None:
        self.device_id = device_id
        self._rng = rng or random.Random()
        self._batch: List[Sample] = []
        self._total_recorded = 0
        self._lock = threading.Lock()

    def record(self, sample: Sample) -> int:
        """Append a sample and return the current batch size."""
        # re-validate: callers may construct Sample directly and bypass create()
        Sample.create(sample.latitude, sample.longitude, sample.timestamp)
        with self._lock:
            self._batch.append(sample)
            self._total_recorded += 1
            return len(self._batch)

    def record_coordinates(
        self,
        latitude: float,
        longitude: float,
        timestamp: dt.datetime | None = None,
    ) -> int:
        """Validate raw coordinates, stamp them with this device and record."""
        sample = Sample.create(latitude, longitude, timestamp, device_id=self.device_id)
        return self.record(sample)

    def drain_random_representative(self) -> Optional[DrainedBatch]:
        """Pick one sample uniformly at random and clear the whole batch.

        Returns None for an empty batch; that is a normal idle cycle.
        """
        with self._lock:
            if not self._batch:
                return None
            drained = self._batch
            self._batch = []
            representative = self._rng.choice(drained)

        logger.debug(
            "Drained sample batch",
            extra={"batch_size": len(drained)},
        )
        return DrainedBatch(representative=representative, samples=tuple(drained))

    def size(self) -> int:
        with self._lock:
            return len(self._batch)

    __len__ = size

    @property
    def total_recorded(self) -> int:
        """Number of samples accepted this session, including drained ones."""
        with self._lock:
            return self._total_recorded
