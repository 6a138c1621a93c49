"""
Route geometry for the Juja ↔ Nairobi corridor and the external directions
services that supply it.

Providers are plain synchronous ``requests`` clients; the route cache runs
them off the event loop.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import requests

from .conf import get_route_provider_config
from .exceptions import RouteFetchFailed

LOGGER = logging.getLogger(__name__)

ORS_DIRECTIONS_URL = "https://api.openrouteservice.org/v2/directions/driving-car/geojson"
DEFAULT_OSRM_URL = "http://router.project-osrm.org"


class LatLng(NamedTuple):
    lat: float
    lng: float


@dataclass(frozen=True)
class Route:
    key: str
    points: Tuple[LatLng, ...]
    origin_label: str = "Origin"
    destination_label: str = "Destination"

    def __post_init__(self):
        if not self.points:
            raise ValueError(f"Route {self.key!r} has no points.")

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, index: int) -> LatLng:
        return self.points[index]


DIRECTIONS: Dict[str, Dict[str, object]] = {
    "Juja-Nairobi": {
        "start": LatLng(-1.1016, 37.0144),
        "end": LatLng(-1.286389, 36.817223),
        "origin_label": "Juja",
        "destination_label": "Nairobi CBD",
    },
    "Nairobi-Juja": {
        "start": LatLng(-1.286389, 36.817223),
        "end": LatLng(-1.1016, 37.0144),
        "origin_label": "Nairobi CBD",
        "destination_label": "Juja",
    },
}


def direction_for(bus_number: str, direction: str = "") -> str:
    """
    Pick the route key for a bus: an explicit direction wins, otherwise buses
    whose number mentions Juja run towards Nairobi and every other bus runs
    the return leg.
    """
    if direction:
        return direction
    return "Juja-Nairobi" if "Juja" in bus_number else "Nairobi-Juja"


def decode_polyline6(encoded: str) -> List[Tuple[float, float]]:
    """Decode an OSRM ``polyline6`` geometry into (lat, lng) pairs."""
    deltas = list(_zigzag_values(encoded))
    if len(deltas) % 2:
        raise ValueError("Invalid polyline: unpaired coordinate.")

    coordinates: List[Tuple[float, float]] = []
    lat = lng = 0
    for d_lat, d_lng in zip(deltas[0::2], deltas[1::2]):
        lat += d_lat
        lng += d_lng
        coordinates.append((lat / 1e6, lng / 1e6))
    return coordinates


def _zigzag_values(encoded: str) -> Iterator[int]:
    # Each value is 5-bit chunks, low first, offset by 63; bit 0x20 marks "more chunks".
    value = shift = 0
    for char in encoded:
        chunk = ord(char) - 63
        value |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            yield ~(value >> 1) if value & 1 else value >> 1
            value = shift = 0
    if shift:
        raise ValueError("Invalid polyline: truncated value.")


class RouteProvider:
    """Resolves a driving path between two coordinates."""

    name = "base"

    def fetch(self, start: LatLng, end: LatLng) -> List[LatLng]:
        raise NotImplementedError


class OpenRouteServiceProvider(RouteProvider):
    name = "ors"

    def __init__(self, api_key: str, timeout: float = 5.0, url: str = ORS_DIRECTIONS_URL):
        self.api_key = api_key
        self.timeout = timeout
        self.url = url

    def fetch(self, start: LatLng, end: LatLng) -> List[LatLng]:
        body = {"coordinates": [[start.lng, start.lat], [end.lng, end.lat]]}
        try:
            response = requests.post(
                self.url,
                json=body,
                headers={"Authorization": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, json.JSONDecodeError) as error:
            raise RouteFetchFailed(f"OpenRouteService request failed: {error}") from error

        try:
            coordinates = payload["features"][0]["geometry"]["coordinates"]
            # GeoJSON is [lng, lat]
            points = [LatLng(float(lat), float(lng)) for lng, lat, *_ in coordinates]
        except (KeyError, IndexError, TypeError, ValueError) as error:
            raise RouteFetchFailed("OpenRouteService returned no route data") from error

        if not points:
            raise RouteFetchFailed("OpenRouteService returned an empty route")
        return points


class OsrmRouteProvider(RouteProvider):
    name = "osrm"

    def __init__(self, base_url: str = DEFAULT_OSRM_URL, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def fetch(self, start: LatLng, end: LatLng) -> List[LatLng]:
        url = (
            f"{self.base_url}/route/v1/driving/"
            f"{start.lng},{start.lat};{end.lng},{end.lat}"
            "?overview=full&geometries=polyline6"
        )
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, json.JSONDecodeError) as error:
            raise RouteFetchFailed(f"OSRM request failed: {error}") from error

        if data.get("code") != "Ok" or not data.get("routes"):
            raise RouteFetchFailed(f"OSRM could not find a route (code={data.get('code')!r})")

        try:
            coordinates = decode_polyline6(data["routes"][0]["geometry"])
        except (KeyError, TypeError, ValueError) as error:
            raise RouteFetchFailed("OSRM returned a malformed geometry") from error

        if not coordinates:
            raise RouteFetchFailed("OSRM returned an empty route")
        return [LatLng(lat, lng) for lat, lng in coordinates]


class StraightLineProvider(RouteProvider):
    """Offline fallback: evenly spaced points on the segment between the endpoints."""

    name = "straight"

    def __init__(self, steps: int = 50):
        self.steps = max(int(steps), 1)

    def fetch(self, start: LatLng, end: LatLng) -> List[LatLng]:
        return [
            LatLng(
                start.lat + (end.lat - start.lat) * step / self.steps,
                start.lng + (end.lng - start.lng) * step / self.steps,
            )
            for step in range(self.steps + 1)
        ]


def build_route_provider(config: Dict[str, object] | None = None) -> RouteProvider:
    if config is None:
        config = get_route_provider_config()
    provider = str(config.get("provider", "osrm") or "").lower()
    timeout = float(config.get("timeout_seconds", 5))

    if provider == "ors":
        api_key = config.get("ors_api_key")
        if api_key:
            return OpenRouteServiceProvider(str(api_key), timeout=timeout)
        LOGGER.warning("ROUTE_PROVIDER is 'ors' but no API key is set; using straight-line routes.")
        return StraightLineProvider()
    if provider == "osrm":
        return OsrmRouteProvider(str(config.get("osrm_url") or DEFAULT_OSRM_URL), timeout=timeout)
    if provider and provider != "straight":
        LOGGER.warning("Unknown route provider %r; using straight-line routes.", provider)
    return StraightLineProvider(int(config.get("straight_steps", 50)))


def build_route(
    key: str,
    points: Sequence[Tuple[float, float]],
    definition: Optional[Mapping[str, object]] = None,
) -> Route:
    """Labels come from ``definition``, or the built-in catalogue when none is given."""
    if definition is None:
        definition = DIRECTIONS.get(key, {})
    return Route(
        key=key,
        points=tuple(LatLng(float(lat), float(lng)) for lat, lng in points),
        origin_label=str(definition.get("origin_label", "Origin")),
        destination_label=str(definition.get("destination_label", "Destination")),
    )
