"""Data classes for Wayfinder."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Sequence

from .errors import EmptyRouteError, IndexOutOfRangeError, InvalidInputError


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 coordinate in degrees"""
    lat: float
    lon: float

    def is_valid(self) -> bool:
        from .geo import is_valid_coordinate
        return is_valid_coordinate(self.lat, self.lon)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_dict(cls, d: dict) -> "GeoPoint":
        return cls(lat=d["lat"], lon=d["lon"])


@dataclass
class Fix:
    """A single GPS position sample"""
    lat: float
    lon: float
    accuracy: Optional[float] = None  # meters
    heading: Optional[float] = None  # degrees
    speed: Optional[float] = None  # m/s
    timestamp: Optional[float] = None  # epoch seconds

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lon)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Fix":
        return cls(**d)


class ManeuverType(Enum):
    DEPART = "depart"
    STRAIGHT = "straight"
    LEFT = "left"
    RIGHT = "right"
    SLIGHT_LEFT = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    SHARP_LEFT = "sharp_left"
    SHARP_RIGHT = "sharp_right"
    KEEP_LEFT = "keep_left"
    KEEP_RIGHT = "keep_right"
    U_TURN = "u_turn"
    ENTER_ROUNDABOUT = "enter_roundabout"
    EXIT_ROUNDABOUT = "exit_roundabout"
    ARRIVE = "arrive"


# OpenRouteService instruction type codes
ORS_MANEUVER_TYPES = {
    0: ManeuverType.LEFT,
    1: ManeuverType.RIGHT,
    2: ManeuverType.SHARP_LEFT,
    3: ManeuverType.SHARP_RIGHT,
    4: ManeuverType.SLIGHT_LEFT,
    5: ManeuverType.SLIGHT_RIGHT,
    6: ManeuverType.STRAIGHT,
    7: ManeuverType.ENTER_ROUNDABOUT,
    8: ManeuverType.EXIT_ROUNDABOUT,
    9: ManeuverType.U_TURN,
    10: ManeuverType.ARRIVE,
    11: ManeuverType.DEPART,
    12: ManeuverType.KEEP_LEFT,
    13: ManeuverType.KEEP_RIGHT,
}

# Checked in order, so the more specific phrases come first
_TEXT_MANEUVERS = [
    (("arrive", "destination"), ManeuverType.ARRIVE),
    (("u-turn", "uturn", "u turn"), ManeuverType.U_TURN),
    (("exit the roundabout", "leave the roundabout"), ManeuverType.EXIT_ROUNDABOUT),
    (("roundabout",), ManeuverType.ENTER_ROUNDABOUT),
    (("sharp left",), ManeuverType.SHARP_LEFT),
    (("sharp right",), ManeuverType.SHARP_RIGHT),
    (("slight left",), ManeuverType.SLIGHT_LEFT),
    (("slight right",), ManeuverType.SLIGHT_RIGHT),
    (("keep left",), ManeuverType.KEEP_LEFT),
    (("keep right",), ManeuverType.KEEP_RIGHT),
    (("left",), ManeuverType.LEFT),
    (("right",), ManeuverType.RIGHT),
    (("head", "depart"), ManeuverType.DEPART),
]


def maneuver_from_ors(code) -> Optional[ManeuverType]:
    """Map an OpenRouteService step type to a ManeuverType"""
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return ORS_MANEUVER_TYPES.get(code)


def maneuver_from_text(text: Optional[str]) -> ManeuverType:
    """Guess the maneuver from instruction text, defaulting to straight on"""
    if not text:
        return ManeuverType.STRAIGHT
    lower = text.lower()
    for phrases, maneuver in _TEXT_MANEUVERS:
        if any(phrase in lower for phrase in phrases):
            return maneuver
    return ManeuverType.STRAIGHT


@dataclass(frozen=True)
class RouteInstruction:
    """A turn-by-turn instruction anchored to a point of the route"""
    index: int
    anchor: GeoPoint
    text: str
    maneuver: ManeuverType
    distance_to_next: float = 0.0  # meters from this anchor to the next one
    duration_to_next: float = 0.0  # seconds
    street_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "anchor": self.anchor.to_dict(),
            "text": self.text,
            "maneuver": self.maneuver.value,
            "distance_to_next": self.distance_to_next,
            "duration_to_next": self.duration_to_next,
            "street_name": self.street_name,
        }


@dataclass(frozen=True)
class RouteModel:
    """Immutable view over a route's polyline and instructions.

    total_distance/total_duration default to the sums over the instructions;
    pass the routing provider's summary values to use those instead.
    """
    polyline: Sequence[GeoPoint]
    instructions: Sequence[RouteInstruction]
    total_distance: Optional[float] = None
    total_duration: Optional[float] = None
    _suffix: tuple = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        polyline = tuple(self.polyline or ())
        instructions = tuple(self.instructions or ())
        if len(polyline) < 2:
            raise EmptyRouteError(f"Route needs at least 2 points, got {len(polyline)}")
        if not instructions:
            raise EmptyRouteError("Route has no instructions")
        for position, instruction in enumerate(instructions):
            if instruction.index != position:
                raise InvalidInputError(
                    f"Instruction at position {position} has index {instruction.index}"
                )
            if instruction.distance_to_next < 0 or instruction.duration_to_next < 0:
                raise InvalidInputError(f"Instruction {position} has a negative distance or duration")

        # _suffix[i] = sum of distance_to_next for instructions with index >= i
        suffix = [0.0] * (len(instructions) + 1)
        for i in range(len(instructions) - 1, -1, -1):
            suffix[i] = suffix[i + 1] + instructions[i].distance_to_next

        object.__setattr__(self, "polyline", polyline)
        object.__setattr__(self, "instructions", instructions)
        object.__setattr__(self, "_suffix", tuple(suffix))
        if self.total_distance is None:
            object.__setattr__(self, "total_distance", suffix[0])
        if self.total_duration is None:
            object.__setattr__(self, "total_duration",
                               sum(s.duration_to_next for s in instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    @property
    def last_index(self) -> int:
        return len(self.instructions) - 1

    def is_last(self, index: int) -> bool:
        return index == self.last_index

    def step_at(self, index: int) -> RouteInstruction:
        """Get instruction by index (no negative indexing)"""
        if not isinstance(index, int) or not 0 <= index < len(self.instructions):
            raise IndexOutOfRangeError(
                f"Instruction index {index} outside [0, {len(self.instructions)})"
            )
        return self.instructions[index]

    def remaining_distance_from(self, position: GeoPoint, step_index: int) -> float:
        """Distance left to the destination while following step_index.

        Measures to the anchor being walked toward (the next instruction, or
        this one when it is the last) and adds the precomputed distance_to_next
        of every later instruction. This intentionally does not measure to the
        anchor of step_index itself, which would count the current leg twice.
        """
        from .geo import haversine_distance

        self.step_at(step_index)
        target = self.instructions[min(step_index + 1, self.last_index)]
        return haversine_distance(position, target.anchor) + self._suffix[step_index + 1]


class NavigationState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    RECALCULATING = "recalculating"
    ARRIVED = "arrived"
    CANCELLED = "cancelled"


class UpdateStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NO_SIGNIFICANT_CHANGE = "no_significant_change"
    PAUSED = "paused"
    INACTIVE = "inactive"


@dataclass
class TurnNotificationLevels:
    """Which approach tiers already fired for one instruction"""
    tier1: bool = False
    tier2: bool = False
    tier3: bool = False

    @property
    def highest(self) -> int:
        if self.tier3:
            return 3
        if self.tier2:
            return 2
        if self.tier1:
            return 1
        return 0

    def mark(self, tier: int):
        """Mark a tier and every lower one as reached"""
        self.tier1 = self.tier1 or tier >= 1
        self.tier2 = self.tier2 or tier >= 2
        self.tier3 = self.tier3 or tier >= 3


@dataclass(frozen=True)
class TierCrossing:
    instruction_index: int
    tier: int
    distance: float


@dataclass
class SessionStats:
    fixes_received: int = 0
    fixes_accepted: int = 0
    fixes_rejected: int = 0
    fixes_debounced: int = 0
    recalculations: int = 0
    recalculations_succeeded: int = 0
    recalculations_failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SessionUpdate:
    """Everything that changed during one position update pass"""
    status: UpdateStatus
    reason: Optional[str] = None
    step_index: int = 0
    step_advanced: bool = False
    instruction: Optional[RouteInstruction] = None
    upcoming_instruction: Optional[RouteInstruction] = None
    distance_to_upcoming: Optional[float] = None
    arrived: bool = False
    tier_crossings: list[TierCrossing] = field(default_factory=list)
    deviation_started: bool = False
    deviation_cleared: bool = False
    deviation_active: bool = False
    distance_from_route: Optional[float] = None
    progress_percent: int = 0
    remaining_distance: Optional[float] = None
    estimated_time_remaining: Optional[float] = None  # seconds

    @property
    def accepted(self) -> bool:
        return self.status == UpdateStatus.ACCEPTED

    def summary(self) -> dict:
        """Flat dict for logs and trace files"""
        def rounded(value):
            if value is None or math.isinf(value):
                return None
            return round(value, 1)

        return {
            "status": self.status.value,
            "reason": self.reason,
            "step_index": self.step_index,
            "step_advanced": self.step_advanced,
            "arrived": self.arrived,
            "tiers": [[c.instruction_index, c.tier] for c in self.tier_crossings],
            "deviation_started": self.deviation_started,
            "deviation_cleared": self.deviation_cleared,
            "deviation_active": self.deviation_active,
            "distance_from_route": rounded(self.distance_from_route),
            "progress": self.progress_percent,
            "remaining": rounded(self.remaining_distance),
            "eta": rounded(self.estimated_time_remaining),
        }
