"""Factory helpers for choosing environmental data providers at startup."""

from __future__ import annotations

from ecosphere import config
from ecosphere.data_sources.base import CallableEnvironmentDataSource, EnvironmentDataSource
from ecosphere.data_sources.overpass_client import OverpassPlacesClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "open_meteo"


def _build_air_quality(settings: config.Settings):
    source = (settings.air_quality_source or DEFAULT_SOURCE_NAME).lower()
    if source == "open_meteo":
        from ecosphere.data_sources.open_meteo_client import fetch_air_quality_index

        logger.info("Using Open-Meteo air-quality source")
        return fetch_air_quality_index
    if source == "waqi":
        from ecosphere.data_sources.waqi_client import WaqiClient

        if not settings.waqi_token:
            raise ValueError("waqi_token must be set for the WAQI air-quality source")
        logger.info("Using WAQI air-quality source")
        return WaqiClient(settings.waqi_token).fetch_air_quality_index
    raise ValueError(f"Unknown air-quality source '{source}'")


def _build_weather(settings: config.Settings):
    source = (settings.weather_source or DEFAULT_SOURCE_NAME).lower()
    if source == "open_meteo":
        from ecosphere.data_sources.open_meteo_client import fetch_weather_series

        logger.info("Using Open-Meteo weather source")
        return fetch_weather_series
    raise ValueError(f"Unknown weather source '{source}'")


def build_data_source(settings: config.Settings | None = None) -> EnvironmentDataSource:
    """Instantiate the configured weather, air-quality and places providers."""
    settings = settings or config.settings
    places = OverpassPlacesClient(
        settings.overpass_url,
        radius_m=settings.green_space_radius_m,
        query=settings.green_space_query,
    )
    return CallableEnvironmentDataSource(
        weather_series=_build_weather(settings),
        air_quality_index=_build_air_quality(settings),
        nearest_green_space=places.fetch_nearest_green_space,
    )
