"""Nearest green space lookup through the OpenStreetMap Overpass API.

The Overpass query searches within a fixed radius for elements tagged with the
configured leisure value (``park`` by default) and returns the one closest to
the sample by great-circle distance.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Optional, Tuple

import requests

from ecosphere.domain import GreenSpace
from ecosphere.errors import SourceError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="overpass_client")

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
REQUEST_TIMEOUT_SECONDS = 10
EARTH_RADIUS_M = 6_371_008.8
UNKNOWN_NAME = "Unknown"


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two points, returned in meters."""
    lat1_r, lon1_r = math.radians(lat1), math.radians(lon1)
    lat2_r, lon2_r = math.radians(lat2), math.radians(lon2)

    dlat = lat2_r - lat1_r
    dlon = lon2_r - lon1_r

    a = (math.sin(dlat / 2) ** 2
         + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2)
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_M * c


def build_query(latitude: float, longitude: float, *, radius_m: int, leisure: str) -> str:
    """Overpass QL for nodes, ways and relations with the given leisure tag."""
    around = f"(around:{radius_m},{latitude},{longitude})"
    return f"""
    [out:json][timeout:{REQUEST_TIMEOUT_SECONDS}];
    (
      node["leisure"="{leisure}"]{around};
      way["leisure"="{leisure}"]{around};
      relation["leisure"="{leisure}"]{around};
    );
    out center tags;
    """


def _element_position(element: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    """Nodes carry lat/lon directly; ways and relations carry a center."""
    if "lat" in element and "lon" in element:
        return float(element["lat"]), float(element["lon"])
    center = element.get("center")
    if center and "lat" in center and "lon" in center:
        return float(center["lat"]), float(center["lon"])
    return None


def nearest_element(
    latitude: float,
    longitude: float,
    elements: Iterable[Dict[str, Any]],
) -> Optional[GreenSpace]:
    """Pick the closest positioned element, or None if there is none."""
    best: Optional[GreenSpace] = None
    for element in elements:
        position = _element_position(element)
        if position is None:
            continue
        distance = haversine_m(latitude, longitude, *position)
        if best is None or distance < best.distance_meters:
            name = (element.get("tags") or {}).get("name") or UNKNOWN_NAME
            best = GreenSpace(name=name, distance_meters=distance)
    return best


class OverpassPlacesClient:
    """Find the nearest green space around a coordinate."""

    def __init__(
        self,
        base_url: str = DEFAULT_OVERPASS_URL,
        *,
        radius_m: int = 5000,
        query: str = "park",
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url
        self.radius_m = radius_m
        self.leisure = query.strip().lower()
        self.session = session or requests.Session()

    def fetch_nearest_green_space(self, latitude: float, longitude: float, **_kwargs) -> Optional[GreenSpace]:
        query = build_query(latitude, longitude, radius_m=self.radius_m, leisure=self.leisure)
        resp = self.session.post(self.base_url, data={"data": query}, timeout=REQUEST_TIMEOUT_SECONDS)
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as exc:
            raise SourceError("green_space", "Overpass returned a non-JSON body") from exc

        elements = payload.get("elements")
        if elements is None:
            raise SourceError("green_space", "Overpass response has no 'elements'")

        nearest = nearest_element(latitude, longitude, elements)
        if nearest is None:
            logger.info(
                "No green space found within radius",
                extra={"latitude": latitude, "longitude": longitude, "radius_m": self.radius_m},
            )
        return nearest
