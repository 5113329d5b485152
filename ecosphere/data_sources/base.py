"""Interfaces and helpers for environmental data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ecosphere.domain import GreenSpace, WeatherSeries


class EnvironmentDataSource(Protocol):
    """Interface for anything that can provide weather, air quality and places data.

    Each method may return None for "no data" or raise on failure; the
    fetcher treats both as an absent field.
    """

    def fetch_weather_series(self, latitude: float, longitude: float) -> Optional[WeatherSeries]:
        """Return today's hourly weather series."""
        ...

    def fetch_air_quality_index(self, latitude: float, longitude: float) -> Optional[int]:
        """Return the current AQI."""
        ...

    def fetch_nearest_green_space(self, latitude: float, longitude: float) -> Optional[GreenSpace]:
        """Return the nearest green space within the search radius."""
        ...


@dataclass
class CallableEnvironmentDataSource(EnvironmentDataSource):
    """Wrap three callables so providers can be mixed and swapped."""

    weather_series: Callable[..., Optional[WeatherSeries]]
    air_quality_index: Callable[..., Optional[int]]
    nearest_green_space: Callable[..., Optional[GreenSpace]]

    def fetch_weather_series(self, *args, **kwargs) -> Optional[WeatherSeries]:
        return self.weather_series(*args, **kwargs)

    def fetch_air_quality_index(self, *args, **kwargs) -> Optional[int]:
        return self.air_quality_index(*args, **kwargs)

    def fetch_nearest_green_space(self, *args, **kwargs) -> Optional[GreenSpace]:
        return self.nearest_green_space(*args, **kwargs)
