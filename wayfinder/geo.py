"""Geographic utility functions.

All functions are total: degenerate input never raises. Distances use
``math.inf`` as the "cannot compare" sentinel and bearings use 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import GeoPoint

EARTH_RADIUS = 6371000  # meters


@dataclass(frozen=True)
class PolylineMatch:
    """Closest point of a polyline to a reference point"""
    index: int  # segment index (start point index), -1 when nothing matched
    distance: float  # meters, inf when nothing matched
    point: Optional[GeoPoint]


def _coords(p) -> Optional[tuple[float, float]]:
    """Return (lat, lon) as floats, or None when missing or NaN"""
    if p is None:
        return None
    lat = getattr(p, "lat", None)
    lon = getattr(p, "lon", None)
    if isinstance(lat, bool) or isinstance(lon, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return None
    if not math.isfinite(lat) or not math.isfinite(lon):
        return None
    return float(lat), float(lon)


def is_valid_coordinate(lat, lon) -> bool:
    """Check that lat/lon are finite numbers inside WGS84 bounds"""
    coords = _coords(GeoPoint(lat, lon))
    if coords is None:
        return False
    return -90 <= coords[0] <= 90 and -180 <= coords[1] <= 180


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Calculate distance between two points in meters using Haversine formula.

    Returns inf when either point is missing or has a NaN coordinate.
    """
    ca, cb = _coords(a), _coords(b)
    if ca is None or cb is None:
        return math.inf

    phi1 = math.radians(ca[0])
    phi2 = math.radians(cb[0])
    delta_phi = math.radians(cb[0] - ca[0])
    delta_lambda = math.radians(cb[1] - ca[1])

    h = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))

    return EARTH_RADIUS * c


def bearing_or_none(a: GeoPoint, b: GeoPoint) -> Optional[float]:
    """Initial bearing from a to b in degrees [0, 360), None when undefined"""
    ca, cb = _coords(a), _coords(b)
    if ca is None or cb is None or ca == cb:
        return None

    phi1 = math.radians(ca[0])
    phi2 = math.radians(cb[0])
    delta_lambda = math.radians(cb[1] - ca[1])

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = (math.degrees(math.atan2(x, y)) + 360) % 360
    # -0.0 and float rounding can land exactly on 360
    return 0.0 if bearing >= 360 else bearing


def bearing_between(a: GeoPoint, b: GeoPoint) -> float:
    """Calculate bearing from a to b in degrees (0-360, 0=North).

    Returns 0 for invalid input and identical points, which cannot be told
    apart from due north. Use bearing_or_none() when that matters.
    """
    bearing = bearing_or_none(a, b)
    return 0.0 if bearing is None else bearing


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to compass direction"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    index = round(bearing / 45) % 8
    return directions[index]


def _segment_match(p: GeoPoint, start: GeoPoint, end: GeoPoint) -> tuple[float, Optional[GeoPoint]]:
    """Distance from p to segment start-end and the closest point on it.

    Uses the triangle formed by p and the segment endpoints: when the
    projection of p falls inside the segment the distance is the triangle
    height (Heron's formula), otherwise the nearer endpoint.
    """
    a = haversine_distance(p, start)
    b = haversine_distance(p, end)
    c = haversine_distance(start, end)

    if math.isinf(a) or math.isinf(b) or math.isinf(c):
        return math.inf, None

    nearer = (a, start) if a <= b else (b, end)

    # Degenerate segment
    if c < 1:
        return nearer

    # Projection outside the segment: one of the endpoint angles is obtuse
    if a * a > b * b + c * c or b * b > a * a + c * c:
        return nearer

    s = (a + b + c) / 2
    area = math.sqrt(max(0.0, s * (s - a) * (s - b) * (s - c)))
    height = (2 * area) / c

    # Position of the foot along the segment (law of cosines)
    along = (a * a + c * c - b * b) / (2 * c)
    t = min(1.0, max(0.0, along / c))
    foot = GeoPoint(
        start.lat + (end.lat - start.lat) * t,
        start.lon + (end.lon - start.lon) * t,
    )
    return height, foot


def nearest_point_on_polyline(p: GeoPoint, polyline: Sequence[GeoPoint]) -> PolylineMatch:
    """Find the closest point of a polyline to p.

    Linear scan over consecutive point pairs; ties keep the earliest segment.
    """
    if _coords(p) is None or not polyline:
        return PolylineMatch(index=-1, distance=math.inf, point=None)

    if len(polyline) == 1:
        dist = haversine_distance(p, polyline[0])
        if math.isinf(dist):
            return PolylineMatch(index=-1, distance=math.inf, point=None)
        return PolylineMatch(index=0, distance=dist, point=polyline[0])

    best = PolylineMatch(index=-1, distance=math.inf, point=None)
    for i in range(len(polyline) - 1):
        dist, point = _segment_match(p, polyline[i], polyline[i + 1])
        if dist < best.distance:
            best = PolylineMatch(index=i, distance=dist, point=point)

    return best


def point_ahead(p: GeoPoint, bearing_deg: float, meters: float) -> GeoPoint:
    """Project a point forward along a bearing"""
    coords = _coords(p)
    if coords is None or not isinstance(bearing_deg, (int, float)) \
            or not isinstance(meters, (int, float)) \
            or not math.isfinite(bearing_deg) or not math.isfinite(meters):
        return p

    lat = math.radians(coords[0])
    lon = math.radians(coords[1])
    theta = math.radians(bearing_deg)
    delta = meters / EARTH_RADIUS

    new_lat = math.asin(
        math.sin(lat) * math.cos(delta) +
        math.cos(lat) * math.sin(delta) * math.cos(theta)
    )
    new_lon = lon + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat),
        math.cos(delta) - math.sin(lat) * math.sin(new_lat)
    )

    lon_deg = (math.degrees(new_lon) + 540) % 360 - 180
    return GeoPoint(math.degrees(new_lat), lon_deg)
