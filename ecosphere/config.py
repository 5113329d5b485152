"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the EcoSphere aggregation service."""
    model_config = SettingsConfigDict(env_prefix="ECOSPHERE_", extra="ignore")

    # identity is passed explicitly into samples and uploads
    device_id: str = "anonymous-device"

    cycle_period_seconds: float = 30.0
    source_timeout_seconds: float = 10.0
    fetch_workers: int = 4
    scheduler_autostart: bool = True

    weather_source: str = "open_meteo"  # options: open_meteo
    air_quality_source: str = "open_meteo"  # options: open_meteo, waqi
    waqi_token: str | None = None
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    green_space_radius_m: int = 5000
    green_space_query: str = "park"
    http_cache_seconds: int = 900

    upload_sink: str = "memory"  # options: memory, http, redis
    upload_url: str | None = None
    upload_redis_url: str | None = None
    upload_redis_key: str = "ecosphere:uploads"

    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("overpass_url", "upload_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs to avoid double slashes."""
        if v is None:
            return v
        return str(v).rstrip("/")

    @field_validator("cycle_period_seconds", "source_timeout_seconds", mode="after")
    @classmethod
    def require_positive(cls, v: float) -> float:
        """Periods and timeouts must be strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("fetch_workers", mode="after")
    @classmethod
    def require_enough_workers(cls, v: int) -> int:
        """All four sources must be able to run at once."""
        return max(4, v)


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
