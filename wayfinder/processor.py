"""Per-fix position update pipeline."""

import math
from typing import Optional

from .clock import SystemClock
from .config import CONFIG, merge_config
from .geo import haversine_distance, is_valid_coordinate, nearest_point_on_polyline
from .models import (
    Fix,
    GeoPoint,
    NavigationState,
    RouteModel,
    SessionUpdate,
    TierCrossing,
    UpdateStatus,
)
from .session import NavigationSession


def _number(value) -> Optional[float]:
    """Finite float or None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def progress_percent(total_distance: float, remaining_distance: float) -> int:
    """Share of the route completed, as an integer percentage 0-100"""
    if not total_distance or total_distance <= 0 or math.isinf(remaining_distance):
        return 0
    percent = round(100 * (total_distance - remaining_distance) / total_distance)
    return min(100, max(0, percent))


def compute_progress(route: RouteModel, position: GeoPoint, step_index: int) -> tuple[int, float]:
    """Return (progress_percent, remaining_distance) for a position on route"""
    remaining = route.remaining_distance_from(position, step_index)
    return progress_percent(route.total_distance, remaining), remaining


def effective_speed(speed: Optional[float], config: Optional[dict] = None) -> float:
    """Reported speed when plausible for a pedestrian, else average walking speed"""
    cfg = config or CONFIG
    speed = _number(speed)
    if speed is not None and cfg["min_plausible_speed"] <= speed <= cfg["max_plausible_speed"]:
        return speed
    return cfg["walking_speed"]


class PositionUpdateProcessor:
    """Runs one fix through match, advance, notify and deviation checks.

    Pure apart from mutating the session it is given: it never talks to a
    UI or a route provider. Callers forward the returned SessionUpdate.
    """

    def __init__(self, config: Optional[dict] = None, clock=None):
        self.config = merge_config(config)
        self.clock = clock or SystemClock()
        self._tiers = sorted(self.config["tier_thresholds"], reverse=True)

    def process(self, session: NavigationSession, fix: Fix) -> SessionUpdate:
        session.stats.fixes_received += 1

        if not self._is_valid_fix(fix):
            session.stats.fixes_rejected += 1
            return self._passive(session, UpdateStatus.REJECTED, "invalid coordinates")

        if session.state == NavigationState.PAUSED:
            session.last_fix = fix
            return self._passive(session, UpdateStatus.PAUSED)

        if not session.is_guiding:
            return self._passive(session, UpdateStatus.INACTIVE)

        timestamp = _number(fix.timestamp)
        if (timestamp is not None and session.last_accepted_timestamp is not None
                and timestamp < session.last_accepted_timestamp):
            session.stats.fixes_rejected += 1
            return self._passive(session, UpdateStatus.REJECTED, "stale fix")

        now = self.clock.now()
        if self._is_insignificant(session, fix, now):
            session.stats.fixes_debounced += 1
            return self._passive(session, UpdateStatus.NO_SIGNIFICANT_CHANGE)

        route = session.route
        position = fix.point
        update = SessionUpdate(status=UpdateStatus.ACCEPTED)

        # Step advancement: forward only, one instruction per fix
        approached_index = None
        approached_distance = math.inf
        if not route.is_last(session.current_step_index):
            approached_index = session.current_step_index + 1
            approached_distance = haversine_distance(position, route.step_at(approached_index).anchor)
            if approached_distance <= self.config["step_advance_radius"]:
                session.current_step_index = approached_index
                update.step_advanced = True

        # Arrival
        if route.is_last(session.current_step_index) and not session.arrival_notified:
            if haversine_distance(position, session.destination) <= self.config["arrival_radius"]:
                session.mark_arrived()
                update.arrived = True
                update.estimated_time_remaining = 0.0
                self._accept(session, fix, now)
                return self._fill(update, session)

        # Progress
        percent, remaining = compute_progress(route, position, session.current_step_index)
        session.progress_percent = max(session.progress_percent, percent)
        session.remaining_distance = remaining
        update.estimated_time_remaining = remaining / effective_speed(fix.speed, self.config)

        # Turn approach tiers
        if approached_index is not None:
            self._update_tiers(session, approached_index, approached_distance, update)
            update.distance_to_upcoming = approached_distance
        if update.step_advanced and not route.is_last(session.current_step_index):
            next_index = session.current_step_index + 1
            next_distance = haversine_distance(position, route.step_at(next_index).anchor)
            self._update_tiers(session, next_index, next_distance, update)
            update.distance_to_upcoming = next_distance
        elif update.step_advanced:
            update.distance_to_upcoming = None

        self._check_deviation(session, fix, update)
        self._accept(session, fix, now)
        return self._fill(update, session)

    # Pipeline stages

    def _is_valid_fix(self, fix) -> bool:
        if fix is None:
            return False
        return is_valid_coordinate(getattr(fix, "lat", None), getattr(fix, "lon", None))

    def _is_insignificant(self, session: NavigationSession, fix: Fix, now: float) -> bool:
        """Tiny move shortly after the last accepted update"""
        if session.last_fix is None or session.last_accepted_at is None:
            return False
        moved = haversine_distance(session.last_fix.point, fix.point)
        elapsed = now - session.last_accepted_at
        return (moved < self.config["debounce_distance"]
                and elapsed < self.config["force_refresh_interval"] * 1000)

    def _update_tiers(self, session: NavigationSession, index: int, distance: float,
                      update: SessionUpdate):
        if math.isinf(distance):
            return

        if distance > self.config["tier_reset_distance"]:
            session.turn_notification_levels.pop(index, None)
            return

        reached = 0
        for tier, threshold in enumerate(self._tiers, start=1):
            if distance < threshold:
                reached = tier
        if not reached:
            return

        levels = session.levels_for(index)
        if reached > levels.highest:
            levels.mark(reached)
            update.tier_crossings.append(TierCrossing(index, reached, distance))

    def _check_deviation(self, session: NavigationSession, fix: Fix, update: SessionUpdate):
        match = nearest_point_on_polyline(fix.point, session.route.polyline)
        update.distance_from_route = match.distance

        accuracy = _number(fix.accuracy)
        if accuracy is None or accuracy <= 0:
            accuracy = self.config["default_gps_accuracy"]
        threshold = self.config["deviation_accuracy_factor"] * accuracy + self.config["deviation_margin"]

        if match.distance > threshold:
            speed = _number(fix.speed)
            stationary = speed is not None and speed < self.config["stationary_speed"]
            if not session.deviation_active and not stationary:
                session.deviation_active = True
                update.deviation_started = True
        elif session.deviation_active:
            session.deviation_active = False
            update.deviation_cleared = True

    def _accept(self, session: NavigationSession, fix: Fix, now: float):
        session.last_fix = fix
        session.last_accepted_at = now
        timestamp = _number(fix.timestamp)
        if timestamp is not None:
            session.last_accepted_timestamp = timestamp
        session.stats.fixes_accepted += 1

    # Result building

    def _fill(self, update: SessionUpdate, session: NavigationSession) -> SessionUpdate:
        update.step_index = session.current_step_index
        update.deviation_active = session.deviation_active
        update.progress_percent = session.progress_percent
        update.remaining_distance = session.remaining_distance
        if session.route is not None:
            update.instruction = session.current_instruction
            update.upcoming_instruction = session.upcoming_instruction
        return update

    def _passive(self, session: NavigationSession, status: UpdateStatus,
                 reason: Optional[str] = None) -> SessionUpdate:
        """Update for a fix that changed nothing but the stats"""
        return self._fill(SessionUpdate(status=status, reason=reason), session)
