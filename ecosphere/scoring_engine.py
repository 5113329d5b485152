"""Deterministic Green Index scoring for a joined environmental record.

The composite is a clamped sum, not a weighted average:

    score = min(1.0, aqi_term + green_space_term + temperature_term + noise_term)

with

    aqi_term          = clamp(aqi, 0, 500) / 500       (0 when AQI is missing)
    green_space_term  = 0.5 if green space data present else 1.0
    temperature_term  = 1.0 if weather data present else 0.2
    noise_term        = noise_level / 10               (0 when noise is missing)

The green-space and temperature terms only reflect presence of data, and the
sum saturates at 1.0 easily. Both are kept as-is so new points stay comparable
with previously recorded heatmaps.
"""

from __future__ import annotations

import datetime as dt
from typing import Tuple

from ecosphere.domain import EnvironmentalRecord, ScoreBreakdown, ScoredPoint

AQI_MAX = 500.0
NOISE_DIVISOR = 10.0

GREEN_SPACE_PRESENT_TERM = 0.5
GREEN_SPACE_ABSENT_TERM = 1.0
WEATHER_PRESENT_TERM = 1.0
WEATHER_ABSENT_TERM = 0.2


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def aqi_term(aqi: int | None) -> float:
    if aqi is None:
        return 0.0
    return _clamp(float(aqi), 0.0, AQI_MAX) / AQI_MAX


def noise_term(noise_level: float | None) -> float:
    if noise_level is None:
        return 0.0
    return noise_level / NOISE_DIVISOR


def green_space_term(record: EnvironmentalRecord) -> float:
    return GREEN_SPACE_PRESENT_TERM if record.nearest_green_space is not None else GREEN_SPACE_ABSENT_TERM


def temperature_term(record: EnvironmentalRecord) -> float:
    return WEATHER_PRESENT_TERM if record.weather is not None else WEATHER_ABSENT_TERM


def current_temperature(record: EnvironmentalRecord, hour: int) -> float:
    """Temperature for `hour mod 24`, 0 when the series or entry is missing."""
    if record.weather is None:
        return 0.0
    value = record.weather.value_at("temperature", hour)
    return float(value) if value is not None else 0.0


def composite_score(aqi: float, green: float, temperature: float, noise: float) -> float:
    """Sum the terms and clamp into the unit interval."""
    return _clamp(aqi + green + temperature + noise, 0.0, 1.0)


def score_record(
    record: EnvironmentalRecord,
    latitude: float,
    longitude: float,
    hour: int,
    *,
    now: dt.datetime | None = None,
) -> ScoredPoint:
    """Score one record at a coordinate for the given hour of day."""
    terms = {
        "aqi": aqi_term(record.air_quality_index),
        "green": green_space_term(record),
        "temperature": temperature_term(record),
        "noise": noise_term(record.noise_level),
    }
    green = record.nearest_green_space
    breakdown = ScoreBreakdown(
        aqi=float(record.air_quality_index or 0),
        noise=float(record.noise_level or 0.0),
        temperature=current_temperature(record, hour),
        green_space_distance=green.distance_meters if green else 0.0,
        aqi_term=terms["aqi"],
        green_space_term=terms["green"],
        temperature_term=terms["temperature"],
        noise_term=terms["noise"],
    )
    score = composite_score(terms["aqi"], terms["green"], terms["temperature"], terms["noise"])
    return ScoredPoint(
        latitude=latitude,
        longitude=longitude,
        score=score,
        breakdown=breakdown,
        created_at=now or dt.datetime.now(dt.timezone.utc),
    )


def heatmap_color(score: float) -> Tuple[float, float, float, float]:
    """RGBA fill for a heatmap circle: red grows with the score."""
    intensity = _clamp(score, 0.0, 1.0)
    return intensity, 1.0 - intensity, 0.0, 0.5


def green_index(point: ScoredPoint) -> float:
    """User-facing Green Index for a point, rounded for display."""
    return round(point.score, 2)
