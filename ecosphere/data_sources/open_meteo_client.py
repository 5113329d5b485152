"""Helpers for fetching hourly weather and current AQI from the Open-Meteo APIs."""
from __future__ import annotations

from typing import Optional

import requests_cache
from retry_requests import retry

from ecosphere.config import settings
from ecosphere.domain import WeatherSeries
from ecosphere.errors import SourceError
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="open_meteo_client")

cache_session = requests_cache.CachedSession(".cache", expire_after=settings.http_cache_seconds)
session = retry(cache_session, retries=3, backoff_factor=0.2)

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_AIR_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
REQUEST_TIMEOUT_SECONDS = 10

# Open-Meteo variable name -> WeatherSeries metric
HOURLY_WEATHER_VARS = {
    "temperature_2m": "temperature",
    "precipitation": "precipitation",
    "cloud_cover": "cloud_cover",
    "wind_speed_10m": "wind_speed",
}

EXPECTED_WEATHER_UNITS = {
    "temperature_2m": "°C",
    "precipitation": "mm",
    "cloud_cover": "%",
    "wind_speed_10m": "km/h",
}

# Acceptable alternative units that should not trigger warnings (API/localized differences).
ALLOWED_WEATHER_UNIT_SYNONYMS = {
    "temperature_2m": {"°C", "°F"},
    "precipitation": {"mm", "inch"},
    "cloud_cover": {"%", "percent"},
    "wind_speed_10m": {"km/h", "mph", "m/s", "kn"},
}


def _warn_on_unexpected_units(units: dict, *, context: str):
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, expected in EXPECTED_WEATHER_UNITS.items():
        actual = units.get(field)
        if actual and actual != expected and actual not in ALLOWED_WEATHER_UNIT_SYNONYMS.get(field, set()):
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def fetch_weather_series(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
) -> Optional[WeatherSeries]:
    """Fetch today's hourly temperature, precipitation, cloud cover and wind speed.

    Returns None when the response carries no hourly data at all.
    """
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_WEATHER_VARS),
        "forecast_days": 1,
        "timezone": timezone,
    }

    resp = session.get(OPEN_METEO_WEATHER_URL, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
    resp.raise_for_status()
    data = resp.json()

    hourly = data.get("hourly") or {}
    hourly_units = data.get("hourly_units") or {}
    _warn_on_unexpected_units(hourly_units, context="weather_hourly")

    if not any(hourly.get(var) for var in HOURLY_WEATHER_VARS):
        logger.info("Open-Meteo returned no hourly weather", extra={"latitude": latitude, "longitude": longitude})
        return None

    series = WeatherSeries.from_hourly(
        {metric: hourly.get(var) for var, metric in HOURLY_WEATHER_VARS.items()},
        units={metric: hourly_units[var] for var, metric in HOURLY_WEATHER_VARS.items() if var in hourly_units},
    )
    logger.debug("Fetched weather series", extra={"hours": len(series.temperature)})
    return series


def fetch_air_quality_index(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
) -> Optional[int]:
    """Fetch the current US AQI for the given coordinates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "us_aqi",
        "timezone": timezone,
    }

    resp = session.get(OPEN_METEO_AIR_URL, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
    resp.raise_for_status()
    data = resp.json()

    current = data.get("current") or {}
    us_aqi = current.get("us_aqi")
    if us_aqi is None:
        return None
    try:
        return int(round(float(us_aqi)))
    except (TypeError, ValueError) as exc:
        raise SourceError("air_quality", f"malformed us_aqi value {us_aqi!r}") from exc
