"""Domain vocabulary for samples, environmental records and scored points.

Plain frozen dataclasses shared by the store, fetcher, scoring engine and
scheduler. No I/O and no scoring logic lives here.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from ecosphere.errors import InvalidSample

HOURS_PER_DAY = 24
NOT_AVAILABLE = "N/A"

WEATHER_METRICS = ("temperature", "precipitation", "cloud_cover", "wind_speed")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CycleState(str, Enum):
    """Scheduler state machine states."""
    IDLE = "idle"
    COLLECTING = "collecting"
    AGGREGATING = "aggregating"
    PUBLISHING = "publishing"
    STOPPED = "stopped"


class CycleOutcome(str, Enum):
    """How a single cycle step ended."""
    SKIPPED_EMPTY = "skipped_empty"
    AGGREGATION_FAILED = "aggregation_failed"
    PUBLISHED = "published"


@dataclass(frozen=True)
class Sample:
    """One raw location fix captured by the device."""
    latitude: float
    longitude: float
    timestamp: dt.datetime  # timezone-aware, UTC
    device_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        latitude: float,
        longitude: float,
        timestamp: dt.datetime | None = None,
        *,
        device_id: str | None = None,
    ) -> "Sample":
        """Validate coordinates and build a sample; raises InvalidSample."""
        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError) as exc:
            raise InvalidSample(f"Non-numeric coordinate: ({latitude!r}, {longitude!r})") from exc
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidSample(f"Coordinate must be finite: ({lat}, {lon})")
        if not -90.0 <= lat <= 90.0:
            raise InvalidSample(f"Latitude out of range: {lat}")
        if not -180.0 <= lon <= 180.0:
            raise InvalidSample(f"Longitude out of range: {lon}")

        ts = timestamp or _utcnow()
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=dt.timezone.utc)
        return cls(latitude=lat, longitude=lon, timestamp=ts.astimezone(dt.timezone.utc), device_id=device_id)

    def to_upload_dict(self) -> Dict[str, object]:
        """Shape used by the upload collaborator (epoch-second timestamps)."""
        return {
            "userID": self.device_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp.timestamp(),
        }


@dataclass(frozen=True)
class DrainedBatch:
    """A flushed batch together with the sample picked to represent it."""
    representative: Sample
    samples: Tuple[Sample, ...]

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class WeatherSeries:
    """Hourly weather metrics for the current day, indexed by hour of day."""
    temperature: Tuple[Optional[float], ...] = ()
    precipitation: Tuple[Optional[float], ...] = ()
    cloud_cover: Tuple[Optional[float], ...] = ()
    wind_speed: Tuple[Optional[float], ...] = ()
    units: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_hourly(cls, hourly: Dict[str, Sequence[Optional[float]]], units: Dict[str, str] | None = None) -> "WeatherSeries":
        """Build a series keeping at most one day of values per metric."""
        return cls(**{
            metric: tuple(hourly.get(metric) or ())[:HOURS_PER_DAY]
            for metric in WEATHER_METRICS
        }, units=dict(units or {}))

    def value_at(self, metric: str, hour: int) -> Optional[float]:
        """Return `metric` at `hour mod 24`, or None when missing."""
        values = getattr(self, metric)
        idx = hour % HOURS_PER_DAY
        if idx >= len(values):
            return None
        return values[idx]

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {metric: list(getattr(self, metric)) for metric in WEATHER_METRICS}
        out["units"] = dict(self.units)
        return out


@dataclass(frozen=True)
class GreenSpace:
    """Nearest matching green space and its distance from the sample."""
    name: str
    distance_meters: float


@dataclass(frozen=True)
class EnvironmentalRecord:
    """Joined multi-source environmental data for one coordinate.

    Every field is independently optional: None means that source failed or
    returned nothing. A record with some fields missing is still scorable.
    """
    weather: Optional[WeatherSeries] = None
    air_quality_index: Optional[int] = None
    nearest_green_space: Optional[GreenSpace] = None
    noise_level: Optional[float] = None
    fetched_at: dt.datetime = field(default_factory=_utcnow)

    @staticmethod
    def _fmt(val, unit: str, fmt: str) -> str:
        """Format a value/unit pair or return N/A."""
        if val is None:
            return NOT_AVAILABLE
        text = fmt.format(val)
        return f"{text} {unit}".strip()

    def to_display_strings(self, hour: int) -> Dict[str, str]:
        """Return display strings for the details panel, N/A for missing data."""
        weather = self.weather
        units = weather.units if weather else {}
        green = self.nearest_green_space
        return {
            "temperature": self._fmt(
                weather.value_at("temperature", hour) if weather else None,
                units.get("temperature", "°C"), "{:.2f}"),
            "precipitation": self._fmt(
                weather.value_at("precipitation", hour) if weather else None,
                units.get("precipitation", "mm"), "{:.1f}"),
            "cloud_cover": self._fmt(
                weather.value_at("cloud_cover", hour) if weather else None,
                units.get("cloud_cover", "%"), "{:.0f}"),
            "wind_speed": self._fmt(
                weather.value_at("wind_speed", hour) if weather else None,
                units.get("wind_speed", "km/h"), "{:.1f}"),
            "aqi": self._fmt(self.air_quality_index, "", "{:d}"),
            "noise": self._fmt(self.noise_level, "dB", "{:.2f}"),
            "green_space": (
                f"{green.name} ({green.distance_meters:.0f} m)" if green else NOT_AVAILABLE
            ),
        }

    def to_dict(self) -> Dict[str, object]:
        """Serializable form used in upload payloads."""
        green = self.nearest_green_space
        return {
            "weather": self.weather.to_dict() if self.weather else None,
            "aqi": self.air_quality_index,
            "nearestGreenSpace": (
                {"name": green.name, "distance": green.distance_meters} if green else None
            ),
            "soundIntensity": self.noise_level,
            "fetchedAt": self.fetched_at.isoformat(),
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor values shown next to a heatmap point, plus their terms."""
    aqi: float
    noise: float
    temperature: float
    green_space_distance: float
    aqi_term: float
    green_space_term: float
    temperature_term: float
    noise_term: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "aqi": self.aqi,
            "noise": self.noise,
            "temperature": self.temperature,
            "green_space_distance": self.green_space_distance,
            "aqi_term": self.aqi_term,
            "green_space_term": self.green_space_term,
            "temperature_term": self.temperature_term,
            "noise_term": self.noise_term,
        }


@dataclass(frozen=True)
class ScoredPoint:
    """A geotagged Green Index score ready for heatmap rendering."""
    latitude: float
    longitude: float
    score: float
    breakdown: ScoreBreakdown
    created_at: dt.datetime = field(default_factory=_utcnow)

    @property
    def coordinate(self) -> Tuple[float, float]:
        return self.latitude, self.longitude


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one scheduler step."""
    outcome: CycleOutcome
    sample_count: int = 0
    representative: Optional[Sample] = None
    record: Optional[EnvironmentalRecord] = None
    point: Optional[ScoredPoint] = None
    hour: Optional[int] = None
