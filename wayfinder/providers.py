"""Route providers: OpenRouteService directions and offline fallbacks."""

import asyncio
import json
import math
import os
from typing import Optional

import requests

from .config import CONFIG
from .errors import RouteUnavailableError
from .geo import haversine_distance, is_valid_coordinate
from .models import (
    GeoPoint,
    ManeuverType,
    RouteInstruction,
    RouteModel,
    maneuver_from_ors,
    maneuver_from_text,
)


class RouteProvider:
    """Source of walking routes.

    Subclasses implement fetch_route() and raise RouteUnavailableError for
    anything the caller should treat as "no route right now".
    """

    async def fetch_route(self, origin: GeoPoint, destination: GeoPoint,
                          profile: Optional[str] = None) -> RouteModel:
        raise NotImplementedError


def _number(value, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return max(0.0, float(value))


def _parse_polyline(coordinates) -> list[GeoPoint]:
    if not isinstance(coordinates, list):
        raise RouteUnavailableError("Route geometry has no coordinates")
    polyline = []
    for coord in coordinates:
        # GeoJSON order is [lon, lat(, elevation)]
        if not isinstance(coord, (list, tuple)) or len(coord) < 2:
            raise RouteUnavailableError(f"Malformed coordinate: {coord!r}")
        lon, lat = coord[0], coord[1]
        if not is_valid_coordinate(lat, lon):
            raise RouteUnavailableError(f"Invalid coordinate: {coord!r}")
        polyline.append(GeoPoint(float(lat), float(lon)))
    if len(polyline) < 2:
        raise RouteUnavailableError(f"Route needs at least 2 points, got {len(polyline)}")
    return polyline


def _anchor_index(step: dict, position: int, step_count: int, point_count: int) -> int:
    """Polyline index a step starts at.

    Steps without way_points are spread evenly along the polyline.
    """
    way_points = step.get("way_points")
    if isinstance(way_points, list) and way_points:
        index = way_points[0]
        if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < point_count:
            return index
    return min(point_count - 1, math.floor(position / step_count * point_count))


def parse_ors_geojson(data: dict) -> RouteModel:
    """Build a RouteModel from an OpenRouteService directions GeoJSON response"""
    try:
        feature = data["features"][0]
        coordinates = feature["geometry"]["coordinates"]
        properties = feature.get("properties") or {}
    except (KeyError, IndexError, TypeError) as e:
        raise RouteUnavailableError(f"Malformed route response: {e!r}") from e

    polyline = _parse_polyline(coordinates)

    steps = []
    for segment in properties.get("segments") or []:
        if isinstance(segment, dict):
            steps.extend(s for s in segment.get("steps") or [] if isinstance(s, dict))
    if not steps:
        raise RouteUnavailableError("Route has no instructions")

    instructions = []
    for position, step in enumerate(steps):
        anchor = polyline[_anchor_index(step, position, len(steps), len(polyline))]
        text = step.get("instruction") or ""
        maneuver = maneuver_from_ors(step.get("type")) or maneuver_from_text(text)
        name = step.get("name")
        instructions.append(RouteInstruction(
            index=position,
            anchor=anchor,
            text=text,
            maneuver=maneuver,
            distance_to_next=_number(step.get("distance")),
            duration_to_next=_number(step.get("duration")),
            street_name=name if name and name != "-" else None,
        ))

    if instructions[-1].maneuver != ManeuverType.ARRIVE:
        instructions.append(RouteInstruction(
            index=len(instructions),
            anchor=polyline[-1],
            text="Arrive at your destination",
            maneuver=ManeuverType.ARRIVE,
        ))

    summary = properties.get("summary") or {}
    total_distance = summary.get("distance")
    total_duration = summary.get("duration")
    return RouteModel(
        polyline=polyline,
        instructions=instructions,
        total_distance=_number(total_distance) if total_distance is not None else None,
        total_duration=_number(total_duration) if total_duration is not None else None,
    )


def load_route_file(path: str) -> RouteModel:
    """Load a route saved as OpenRouteService GeoJSON"""
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RouteUnavailableError(f"Cannot read route file {path}: {e}") from e
    return parse_ors_geojson(data)


class OpenRouteServiceProvider(RouteProvider):
    """Walking directions from the OpenRouteService HTTP API"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key or os.environ.get("ORS_API_KEY")
        self.base_url = (base_url or CONFIG["ors_base_url"]).rstrip("/")
        self.timeout = timeout or CONFIG["ors_timeout"]

    def _request(self, origin: GeoPoint, destination: GeoPoint, profile: str) -> dict:
        if not self.api_key:
            raise RouteUnavailableError("No OpenRouteService API key (set ORS_API_KEY)")

        url = f"{self.base_url}/{profile}/geojson"
        body = {
            "coordinates": [[origin.lon, origin.lat], [destination.lon, destination.lat]],
            "instructions": True,
        }
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/geo+json, application/json",
        }
        try:
            response = requests.post(url, json=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise RouteUnavailableError(f"Routing request failed: {e}") from e
        except ValueError as e:
            raise RouteUnavailableError(f"Routing response is not JSON: {e}") from e

    async def fetch_route(self, origin: GeoPoint, destination: GeoPoint,
                          profile: Optional[str] = None) -> RouteModel:
        profile = profile or CONFIG["routing_profile"]
        data = await asyncio.to_thread(self._request, origin, destination, profile)
        return parse_ors_geojson(data)


class StraightLineProvider(RouteProvider):
    """Direct line to the destination, for when no routing service is available"""

    def __init__(self, walking_speed: Optional[float] = None):
        self.walking_speed = walking_speed or CONFIG["walking_speed"]

    def build(self, origin: GeoPoint, destination: GeoPoint) -> RouteModel:
        distance = haversine_distance(origin, destination)
        if math.isinf(distance):
            raise RouteUnavailableError("Cannot route between invalid points")
        duration = distance / self.walking_speed
        return RouteModel(
            polyline=[origin, destination],
            instructions=[
                RouteInstruction(0, origin, "Head toward the destination", ManeuverType.DEPART,
                                 distance_to_next=distance, duration_to_next=duration),
                RouteInstruction(1, destination, "Arrive at your destination", ManeuverType.ARRIVE),
            ],
        )

    async def fetch_route(self, origin: GeoPoint, destination: GeoPoint,
                          profile: Optional[str] = None) -> RouteModel:
        return self.build(origin, destination)
