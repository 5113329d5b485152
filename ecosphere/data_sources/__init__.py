"""Data source adapters for weather, air quality and green space lookups."""

from .base import CallableEnvironmentDataSource, EnvironmentDataSource
from .factory import build_data_source
from .overpass_client import OverpassPlacesClient
from .waqi_client import WaqiClient

__all__ = [
    "build_data_source",
    "CallableEnvironmentDataSource",
    "EnvironmentDataSource",
    "OverpassPlacesClient",
    "WaqiClient",
]
