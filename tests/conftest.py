"""Shared pytest fixtures.

Adds the project root to the path and provides small equator routes, a
manual clock and a sink that records every guidance event.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from wayfinder.clock import ManualClock
from wayfinder.geo import haversine_distance
from wayfinder.models import Fix, GeoPoint, ManeuverType, RouteInstruction, RouteModel
from wayfinder.providers import RouteProvider
from wayfinder.session import NavigationSession
from wayfinder.sink import GuidanceEventSink


# --- Factory helpers -------------------------------------------------
def make_route(points, maneuvers=None) -> RouteModel:
    """Route with one instruction anchored at every polyline point"""
    polyline = [GeoPoint(lat, lon) for lat, lon in points]
    if maneuvers is None:
        maneuvers = [ManeuverType.DEPART] + [ManeuverType.LEFT] * (len(polyline) - 2) + [ManeuverType.ARRIVE]
    instructions = []
    for i, point in enumerate(polyline):
        distance = haversine_distance(point, polyline[i + 1]) if i + 1 < len(polyline) else 0.0
        instructions.append(RouteInstruction(
            index=i,
            anchor=point,
            text=f"{maneuvers[i].value} {i}",
            maneuver=maneuvers[i],
            distance_to_next=distance,
            duration_to_next=distance / 1.4,
        ))
    return RouteModel(polyline=polyline, instructions=instructions)


def fix_at(point: GeoPoint, accuracy=5.0, speed=1.4, timestamp=None) -> Fix:
    return Fix(lat=point.lat, lon=point.lon, accuracy=accuracy, speed=speed, timestamp=timestamp)


def make_ors_geojson():
    """Minimal OpenRouteService directions response along the equator"""
    return {
        "type": "FeatureCollection",
        "features": [{
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [[0.0, 0.0], [0.001, 0.0], [0.002, 0.0]],
            },
            "properties": {
                "summary": {"distance": 222.4, "duration": 160.1},
                "segments": [{
                    "distance": 222.4,
                    "duration": 160.1,
                    "steps": [
                        {"distance": 111.2, "duration": 80.0, "type": 11,
                         "instruction": "Head east on Main Street", "name": "Main Street",
                         "way_points": [0, 1]},
                        {"distance": 111.2, "duration": 80.1, "type": 6,
                         "instruction": "Continue straight onto Side Road", "name": "Side Road",
                         "way_points": [1, 2]},
                        {"distance": 0.0, "duration": 0.0, "type": 10,
                         "instruction": "Arrive at Side Road", "name": "-",
                         "way_points": [2, 2]},
                    ],
                }],
            },
        }],
    }


class RecordingSink(GuidanceEventSink):
    """Sink that appends (event, payload) tuples to self.events"""

    def __init__(self):
        self.events = []

    def names(self):
        return [name for name, _ in self.events]

    def on_step_changed(self, instruction):
        self.events.append(("step_changed", instruction.index))

    def on_progress(self, update):
        self.events.append(("progress", update.progress_percent))

    def on_turn_approach(self, instruction, tier):
        self.events.append(("turn_approach", (instruction.index, tier)))

    def on_deviation_started(self):
        self.events.append(("deviation_started", None))

    def on_deviation_cleared(self):
        self.events.append(("deviation_cleared", None))

    def on_arrived(self):
        self.events.append(("arrived", None))

    def on_recalculated(self, route):
        self.events.append(("recalculated", len(route)))

    def on_recalculation_failed(self, reason):
        self.events.append(("recalculation_failed", reason))


class StaticRouteProvider(RouteProvider):
    """Always returns the same route and counts the requests"""

    def __init__(self, route):
        self.route = route
        self.calls = 0

    async def fetch_route(self, origin, destination, profile=None):
        self.calls += 1
        return self.route


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def line_route():
    """(0,0) -> (0,0.001) -> (0,0.002), about 111 m per leg"""
    return make_route([(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)])


@pytest.fixture
def turn_route():
    """East for about 334 m, then north"""
    return make_route([(0.0, 0.0), (0.0, 0.003), (0.003, 0.003)])


@pytest.fixture
def destination():
    return GeoPoint(0.0, 0.002)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def session(line_route, destination):
    s = NavigationSession()
    s.start(line_route, destination)
    return s


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def ors_geojson():
    return make_ors_geojson()
