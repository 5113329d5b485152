"""World Air Quality Index (waqi.info) feed lookup by coordinate."""
from __future__ import annotations

from typing import Optional

import requests

from ecosphere.errors import SourceError
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="waqi_client")

WAQI_FEED_URL = "https://api.waqi.info/feed/geo:{latitude};{longitude}/"
REQUEST_TIMEOUT_SECONDS = 10


class WaqiClient:
    """Fetch the current station AQI nearest to a coordinate."""

    def __init__(self, token: str, *, session: requests.Session | None = None) -> None:
        if not token:
            raise ValueError("waqi_token must be set for the WAQI air-quality source")
        self.token = token
        self.session = session or requests.Session()

    def fetch_air_quality_index(self, latitude: float, longitude: float, **_kwargs) -> Optional[int]:
        url = WAQI_FEED_URL.format(latitude=latitude, longitude=longitude)
        resp = self.session.get(url, params={"token": self.token}, timeout=REQUEST_TIMEOUT_SECONDS)
        resp.raise_for_status()
        payload = resp.json()

        if payload.get("status") != "ok":
            logger.warning(
                "WAQI returned an error status",
                extra={"url": mask_url(f"{url}?token={self.token}"), "status": payload.get("status")},
            )
            raise SourceError("air_quality", f"WAQI status {payload.get('status')!r}: {payload.get('data')!r}")

        aqi = (payload.get("data") or {}).get("aqi")
        if aqi is None:
            return None
        # stations without a current reading report "-"
        try:
            return int(aqi)
        except (TypeError, ValueError) as exc:
            raise SourceError("air_quality", f"malformed aqi value {aqi!r}") from exc
