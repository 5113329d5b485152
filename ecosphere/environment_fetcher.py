"""Concurrent fan-out/fan-in over the four environmental sources.

Weather, air quality, nearest green space and noise level are fetched as
independent tasks on a thread pool and joined with a barrier: the join waits
until every task has settled or the per-source timeout has elapsed. A source
that fails, times out or returns nothing leaves its field empty; only when all
four fail does the join raise AggregationFailed.

Each source has at most one call in flight. A source whose previous call is
still hanging is reported failed for the cycle instead of queueing behind it,
so a stuck provider never holds the other sources' workers.
"""
from __future__ import annotations

import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Tuple

from ecosphere.data_sources.base import EnvironmentDataSource
from ecosphere.domain import EnvironmentalRecord, GreenSpace, WeatherSeries
from ecosphere.errors import AggregationFailed, SourceError, SourceTimeout
from ecosphere.noise import NoiseLevelAccessor
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="environment_fetcher")

WEATHER = "weather"
AIR_QUALITY = "air_quality"
GREEN_SPACE = "green_space"
NOISE = "noise"
SOURCES = (WEATHER, AIR_QUALITY, GREEN_SPACE, NOISE)


def _check_weather(value: Any) -> Optional[WeatherSeries]:
    if value is None:
        return None
    if not isinstance(value, WeatherSeries):
        raise SourceError(WEATHER, f"unexpected payload type {type(value).__name__}")
    return value


def _check_aqi(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise SourceError(AIR_QUALITY, f"malformed AQI {value!r}")
    return int(value)


def _check_green_space(value: Any) -> Optional[GreenSpace]:
    if value is None:
        return None
    if not isinstance(value, GreenSpace) or value.distance_meters < 0:
        raise SourceError(GREEN_SPACE, f"malformed green space {value!r}")
    return value


def _check_noise(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        level = float(value)
    except (TypeError, ValueError) as exc:
        raise SourceError(NOISE, f"malformed noise level {value!r}") from exc
    if not math.isfinite(level):
        raise SourceError(NOISE, f"non-finite noise level {value!r}")
    return level


_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    WEATHER: _check_weather,
    AIR_QUALITY: _check_aqi,
    GREEN_SPACE: _check_green_space,
    NOISE: _check_noise,
}


class EnvironmentFetcher:
    """Join weather, AQI, green space and noise into one EnvironmentalRecord."""

    def __init__(
        self,
        data_source: EnvironmentDataSource,
        noise: NoiseLevelAccessor,
        *,
        timeout_seconds: float = 10.0,
        max_workers: int = 4,
    ) -> None:
        self.data_source = data_source
        self.noise = noise
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max(len(SOURCES), max_workers),
            thread_name_prefix="env-fetch",
        )
        self._in_flight: Dict[str, Future] = {}
        self._in_flight_lock = threading.Lock()

    def _tasks(self, latitude: float, longitude: float) -> Dict[str, Callable[[], Any]]:
        ds = self.data_source
        return {
            WEATHER: lambda: ds.fetch_weather_series(latitude, longitude),
            AIR_QUALITY: lambda: ds.fetch_air_quality_index(latitude, longitude),
            GREEN_SPACE: lambda: ds.fetch_nearest_green_space(latitude, longitude),
            NOISE: self.noise.current,
        }

    def _settle(self, name: str, future: Future) -> Any:
        """Return the validated value of a finished future or raise SourceError."""
        try:
            raw = future.result(timeout=0)
        except SourceError:
            raise
        except Exception as exc:
            raise SourceError(name, f"{type(exc).__name__}: {exc}") from exc
        value = _VALIDATORS[name](raw)
        if value is None:
            raise SourceError(name, "no data")
        return value

    def _submit(self, latitude: float, longitude: float) -> Tuple[Dict[str, Future], Dict[str, SourceError]]:
        """Start one call per source, skipping sources whose previous call is still running.

        With at most one call in flight per source and a pool at least as large
        as the number of sources, every submitted call starts immediately.
        """
        futures: Dict[str, Future] = {}
        skipped: Dict[str, SourceError] = {}
        with self._in_flight_lock:
            for name, task in self._tasks(latitude, longitude).items():
                previous = self._in_flight.get(name)
                if previous is not None and not previous.done():
                    skipped[name] = SourceError(name, "previous call still running")
                    continue
                future = self._executor.submit(task)
                self._in_flight[name] = future
                futures[name] = future
        return futures, skipped

    def fetch(self, latitude: float, longitude: float) -> EnvironmentalRecord:
        """Query all sources concurrently and join their results.

        Raises AggregationFailed only if every source failed.
        """
        started = time.perf_counter()
        futures, skipped = self._submit(latitude, longitude)
        wait(futures.values(), timeout=self.timeout_seconds)

        values: Dict[str, Any] = {}
        errors: Dict[str, SourceError] = dict(skipped)
        for name, future in futures.items():
            if not future.done():
                # the call keeps its worker until its own HTTP timeout; its result is ignored
                errors[name] = SourceTimeout(name, self.timeout_seconds)
                continue
            try:
                values[name] = self._settle(name, future)
            except SourceError as exc:
                errors[name] = exc

        failures: Dict[str, str] = {}
        for name, err in errors.items():
            failures[name] = err.reason
            logger.warning(
                "Environmental source failed; field left empty",
                extra={"source": name, "reason": err.reason, "timeout": isinstance(err, SourceTimeout)},
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if len(failures) == len(SOURCES):
            logger.error(
                "All environmental sources failed",
                extra={"latitude": latitude, "longitude": longitude, "elapsed_ms": elapsed_ms},
            )
            raise AggregationFailed(failures)

        logger.info(
            "Joined environmental record",
            extra={
                "latitude": latitude,
                "longitude": longitude,
                "sources_ok": sorted(values),
                "sources_failed": sorted(failures),
                "elapsed_ms": elapsed_ms,
            },
        )
        return EnvironmentalRecord(
            weather=values.get(WEATHER),
            air_quality_index=values.get(AIR_QUALITY),
            nearest_green_space=values.get(GREEN_SPACE),
            noise_level=values.get(NOISE),
        )

    def shutdown(self, wait_for_running: bool = True) -> None:
        """Stop accepting work; running source calls are bounded by their HTTP timeouts."""
        self._executor.shutdown(wait=wait_for_running, cancel_futures=True)
