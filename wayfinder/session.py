"""Navigation session state machine."""

from typing import Optional

from .errors import EmptyRouteError, InvalidDestinationError, InvalidStateError
from .models import (
    Fix,
    GeoPoint,
    NavigationState,
    RouteInstruction,
    RouteModel,
    SessionStats,
    TurnNotificationLevels,
)


class NavigationSession:
    """State of one navigation, from start() until arrival or cancel().

    Owns the active route and every field the position pipeline updates.
    The route is only ever replaced wholesale, by complete_recalculation().
    """

    def __init__(self):
        self.state = NavigationState.IDLE
        self.route: Optional[RouteModel] = None
        self.destination: Optional[GeoPoint] = None
        self.current_step_index: int = 0
        self.last_fix: Optional[Fix] = None
        self.last_accepted_at: Optional[float] = None  # clock millis
        self.last_accepted_timestamp: Optional[float] = None  # fix timestamp, epoch seconds
        self.turn_notification_levels: dict[int, TurnNotificationLevels] = {}
        self.deviation_active: bool = False
        self.progress_percent: int = 0
        self.remaining_distance: Optional[float] = None
        self.arrival_notified: bool = False
        self.generation: int = 0
        self.stats = SessionStats()

    # Lifecycle

    def start(self, route: Optional[RouteModel], destination: Optional[GeoPoint]):
        """Begin guidance along route toward destination"""
        if self.state != NavigationState.IDLE:
            raise InvalidStateError(f"Cannot start a session in state {self.state.value}")
        if route is None or len(route) == 0 or len(route.polyline) < 2:
            raise EmptyRouteError("Cannot start navigation without a route")
        if destination is None or not isinstance(destination, GeoPoint) or not destination.is_valid():
            raise InvalidDestinationError(f"Invalid destination: {destination!r}")

        self.route = route
        self.destination = destination
        self._reset_guidance()
        self.progress_percent = 0
        self.remaining_distance = route.total_distance
        self.arrival_notified = False
        self.generation += 1
        self.state = NavigationState.ACTIVE

    def pause(self):
        if self.state != NavigationState.ACTIVE:
            raise InvalidStateError(f"Cannot pause in state {self.state.value}")
        self.state = NavigationState.PAUSED

    def resume(self):
        if self.state != NavigationState.PAUSED:
            raise InvalidStateError(f"Cannot resume in state {self.state.value}")
        self.state = NavigationState.ACTIVE

    def mark_arrived(self):
        if self.state not in (NavigationState.ACTIVE, NavigationState.RECALCULATING):
            raise InvalidStateError(f"Cannot arrive in state {self.state.value}")
        self.arrival_notified = True
        self.deviation_active = False
        self.progress_percent = 100
        self.remaining_distance = 0.0
        self.state = NavigationState.ARRIVED

    def cancel(self):
        """Stop navigation from any state and drop the route"""
        self.state = NavigationState.CANCELLED
        self.route = None
        self.destination = None
        self.last_fix = None
        self.turn_notification_levels = {}
        self.deviation_active = False
        self.generation += 1

    # Recalculation

    def begin_recalculation(self) -> int:
        """Enter RECALCULATING and return the token identifying this attempt"""
        if self.state != NavigationState.ACTIVE:
            raise InvalidStateError(f"Cannot recalculate in state {self.state.value}")
        self.generation += 1
        self.stats.recalculations += 1
        self.state = NavigationState.RECALCULATING
        return self.generation

    def _owns(self, token: int) -> bool:
        return self.state == NavigationState.RECALCULATING and token == self.generation

    def complete_recalculation(self, token: int, route: RouteModel,
                               progress_percent: int, remaining_distance: float) -> bool:
        """Swap in the new route. Returns False if the attempt is stale."""
        if not self._owns(token):
            return False
        self.route = route
        self._reset_guidance()
        self.progress_percent = progress_percent
        self.remaining_distance = remaining_distance
        self.stats.recalculations_succeeded += 1
        self.state = NavigationState.ACTIVE
        return True

    def fail_recalculation(self, token: int) -> bool:
        """Return to ACTIVE keeping the previous route, cursor and deviation flag"""
        if not self._owns(token):
            return False
        self.stats.recalculations_failed += 1
        self.state = NavigationState.ACTIVE
        return True

    def _reset_guidance(self):
        self.current_step_index = 0
        self.turn_notification_levels = {}
        self.deviation_active = False

    # Read-only helpers

    @property
    def is_guiding(self) -> bool:
        return self.state in (NavigationState.ACTIVE, NavigationState.RECALCULATING)

    @property
    def is_terminal(self) -> bool:
        return self.state in (NavigationState.ARRIVED, NavigationState.CANCELLED)

    @property
    def current_instruction(self) -> Optional[RouteInstruction]:
        if self.route is None:
            return None
        return self.route.step_at(self.current_step_index)

    @property
    def upcoming_instruction(self) -> Optional[RouteInstruction]:
        if self.route is None or self.route.is_last(self.current_step_index):
            return None
        return self.route.step_at(self.current_step_index + 1)

    def levels_for(self, instruction_index: int) -> TurnNotificationLevels:
        levels = self.turn_notification_levels.get(instruction_index)
        if levels is None:
            levels = TurnNotificationLevels()
            self.turn_notification_levels[instruction_index] = levels
        return levels

    def snapshot(self) -> dict:
        """Current state as dict for logging"""
        state = {
            "state": self.state.value,
            "step_index": self.current_step_index,
            "steps": len(self.route) if self.route else 0,
            "progress": self.progress_percent,
            "deviation": self.deviation_active,
            "stats": self.stats.to_dict(),
        }
        if self.remaining_distance is not None:
            state["remaining"] = round(self.remaining_distance, 1)
        if self.last_fix:
            state["location"] = {
                "lat": self.last_fix.lat,
                "lon": self.last_fix.lon,
                "accuracy": self.last_fix.accuracy,
            }
        return state
