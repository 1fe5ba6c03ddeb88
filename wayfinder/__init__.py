"""Wayfinder - Turn-by-turn pedestrian navigation engine."""

from .config import CONFIG, merge_config
from .errors import (
    NavigationError,
    InvalidInputError,
    InvalidDestinationError,
    EmptyRouteError,
    IndexOutOfRangeError,
    RouteUnavailableError,
    InvalidStateError,
)
from .models import (
    GeoPoint,
    Fix,
    ManeuverType,
    RouteInstruction,
    RouteModel,
    NavigationState,
    UpdateStatus,
    TurnNotificationLevels,
    TierCrossing,
    SessionStats,
    SessionUpdate,
)
from .geo import (
    haversine_distance,
    bearing_between,
    bearing_or_none,
    bearing_to_compass,
    nearest_point_on_polyline,
    point_ahead,
    is_valid_coordinate,
)
from .logger import Logger
from .clock import SystemClock, ManualClock
from .session import NavigationSession
from .processor import PositionUpdateProcessor
from .sink import GuidanceEventSink, LoggingEventSink, dispatch_update
from .providers import (
    RouteProvider,
    OpenRouteServiceProvider,
    StraightLineProvider,
    parse_ors_geojson,
    load_route_file,
)
from .recalc import RecalculationCoordinator, RecalculationOutcome, RecalculationResult
from .gps import normalize_point, normalize_fix, GPSPlayback, TraceRecorder
from .app import Navigator
from .__main__ import main

__all__ = [
    "CONFIG",
    "merge_config",
    "NavigationError",
    "InvalidInputError",
    "InvalidDestinationError",
    "EmptyRouteError",
    "IndexOutOfRangeError",
    "RouteUnavailableError",
    "InvalidStateError",
    "GeoPoint",
    "Fix",
    "ManeuverType",
    "RouteInstruction",
    "RouteModel",
    "NavigationState",
    "UpdateStatus",
    "TurnNotificationLevels",
    "TierCrossing",
    "SessionStats",
    "SessionUpdate",
    "haversine_distance",
    "bearing_between",
    "bearing_or_none",
    "bearing_to_compass",
    "nearest_point_on_polyline",
    "point_ahead",
    "is_valid_coordinate",
    "Logger",
    "SystemClock",
    "ManualClock",
    "NavigationSession",
    "PositionUpdateProcessor",
    "GuidanceEventSink",
    "LoggingEventSink",
    "dispatch_update",
    "RouteProvider",
    "OpenRouteServiceProvider",
    "StraightLineProvider",
    "parse_ors_geojson",
    "load_route_file",
    "RecalculationCoordinator",
    "RecalculationOutcome",
    "RecalculationResult",
    "normalize_point",
    "normalize_fix",
    "GPSPlayback",
    "TraceRecorder",
    "Navigator",
    "main",
]
