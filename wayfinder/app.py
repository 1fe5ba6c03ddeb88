"""Navigator: drives a navigation session from a stream of GPS fixes."""

import asyncio
from typing import Optional

from .clock import SystemClock
from .config import merge_config
from .errors import InvalidDestinationError, InvalidInputError
from .logger import Logger
from .models import Fix, GeoPoint, NavigationState, RouteModel, SessionUpdate
from .processor import PositionUpdateProcessor
from .providers import RouteProvider
from .recalc import RecalculationCoordinator, RecalculationOutcome, RecalculationResult
from .session import NavigationSession
from .sink import GuidanceEventSink, dispatch_update, safe_notify


class Navigator:
    """Host loop around one NavigationSession at a time.

    Fixes are handled one by one in arrival order. The only suspending work
    is route recalculation, which runs as its own task while later fixes
    keep being processed against the old route.
    """

    def __init__(self, provider: RouteProvider, sink: Optional[GuidanceEventSink] = None,
                 config: Optional[dict] = None, clock=None, logger: Optional[Logger] = None,
                 profile: Optional[str] = None):
        self.config = merge_config(config)
        self.provider = provider
        self.sink = sink or GuidanceEventSink()
        self.clock = clock or SystemClock()
        self.logger = logger or Logger(echo=False)
        self.profile = profile or self.config["routing_profile"]

        self.processor = PositionUpdateProcessor(self.config, self.clock)
        self.coordinator = RecalculationCoordinator(provider, self.config, self.logger, self.profile)
        self.session = NavigationSession()

        self._queue: asyncio.Queue = asyncio.Queue()
        self._recalc_task: Optional[asyncio.Task] = None
        self._recalc_session: Optional[NavigationSession] = None
        self._last_recalc_failure_at: Optional[float] = None  # clock millis

    @property
    def state(self) -> NavigationState:
        return self.session.state

    def get_state(self) -> dict:
        """Current state as dict for logging"""
        state = self.session.snapshot()
        state["recalculation_pending"] = self.recalculation_pending
        return state

    # Lifecycle

    async def start(self, origin: GeoPoint, destination: GeoPoint):
        """Fetch a route from origin and begin guidance toward destination.

        Provider errors propagate: navigation does not begin without a route.
        """
        if not isinstance(destination, GeoPoint) or not destination.is_valid():
            raise InvalidDestinationError(f"Invalid destination: {destination!r}")
        if not isinstance(origin, GeoPoint) or not origin.is_valid():
            raise InvalidInputError(f"Invalid origin: {origin!r}")

        self._end_previous()
        self.logger.log("Requesting route", {
            "from": origin.to_dict(),
            "to": destination.to_dict(),
            "profile": self.profile,
        })
        route = await self.provider.fetch_route(origin, destination, self.profile)
        self.start_with_route(route, destination)

    def start_with_route(self, route: RouteModel, destination: GeoPoint):
        """Begin guidance along an already known route"""
        self._end_previous()
        session = NavigationSession()
        session.start(route, destination)
        self.session = session
        self._last_recalc_failure_at = None
        self.logger.log("Navigation started", {
            "steps": len(route),
            "distance": round(route.total_distance),
            "destination": destination.to_dict(),
        })

    def _end_previous(self):
        if not self.session.is_terminal and self.session.state != NavigationState.IDLE:
            self.cancel()

    def pause(self):
        self.session.pause()
        self.logger.log("Navigation paused")

    def resume(self):
        self.session.resume()
        self.logger.log("Navigation resumed")

    def cancel(self):
        """Stop navigation in any state.

        A pending recalculation is left to finish on its own and its result
        is discarded.
        """
        self.session.cancel()
        self.logger.log("Navigation cancelled", {"stats": self.session.stats.to_dict()})

    # Fix stream

    def submit(self, fix: Fix):
        self._queue.put_nowait(fix)

    def stop(self):
        """Make run() return after the fixes already submitted"""
        self._queue.put_nowait(None)

    async def run(self):
        """Consume submitted fixes until stop() or the session ends"""
        while True:
            fix = await self._queue.get()
            if fix is None:
                break
            await self.handle_fix(fix)
            if self.session.is_terminal:
                break

    async def handle_fix(self, fix: Fix) -> SessionUpdate:
        """Run one fix through the session and forward the result"""
        session = self.session
        route = session.route
        update = self.processor.process(session, fix)
        if not update.accepted:
            return update

        if update.step_advanced and update.instruction is not None:
            self.logger.log("Step advanced", {
                "index": update.step_index,
                "instruction": update.instruction.text,
            })
        if update.deviation_started:
            self.logger.log("Deviation detected", {
                "distance_from_route": round(update.distance_from_route, 1),
                "accuracy": fix.accuracy,
            })
        if update.deviation_cleared:
            self.logger.log("Back on route")
        if update.arrived:
            self.logger.log("Arrived", {"stats": session.stats.to_dict()})

        dispatch_update(self.sink, update, route, self.logger)

        if update.deviation_started or self._should_retry(session):
            self._schedule_recalculation(session, fix)
        return update

    # Recalculation

    @property
    def recalculation_pending(self) -> bool:
        """True while the current session has a recalculation in flight.

        A task left over from an earlier session does not count: it finishes
        on its own and its result is discarded by that session's token.
        """
        return (self._recalc_task is not None
                and not self._recalc_task.done()
                and self._recalc_session is self.session)

    def _should_retry(self, session: NavigationSession) -> bool:
        interval = self.config["recalculation_retry_interval"]
        if interval is None or not session.deviation_active or self._last_recalc_failure_at is None:
            return False
        return self.clock.now() - self._last_recalc_failure_at >= interval * 1000

    def _schedule_recalculation(self, session: NavigationSession, fix: Fix):
        if session.state != NavigationState.ACTIVE or self.recalculation_pending:
            return
        self._recalc_session = session
        self._recalc_task = asyncio.create_task(self._recalculate(session, fix))

    async def _recalculate(self, session: NavigationSession, fix: Fix) -> RecalculationResult:
        result = await self.coordinator.request_recalculation(session, fix)
        if session is not self.session:
            return result
        if result.outcome == RecalculationOutcome.SUCCEEDED:
            self._last_recalc_failure_at = None
            safe_notify(self.logger, "recalculated", self.sink.on_recalculated, result.route)
        elif result.outcome == RecalculationOutcome.FAILED:
            self._last_recalc_failure_at = self.clock.now()
            safe_notify(self.logger, "recalculation_failed",
                        self.sink.on_recalculation_failed, result.reason)
        return result

    async def wait_for_recalculation(self) -> Optional[RecalculationResult]:
        """Wait for the pending recalculation, if any, and return its result"""
        if self._recalc_task is None:
            return None
        return await self._recalc_task
