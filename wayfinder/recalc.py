"""Route recalculation after a deviation."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import merge_config
from .errors import RouteUnavailableError
from .geo import is_valid_coordinate
from .logger import Logger
from .models import Fix, NavigationState, RouteModel
from .processor import compute_progress
from .providers import RouteProvider
from .session import NavigationSession


class RecalculationOutcome(Enum):
    SUCCEEDED = "succeeded"
    ALREADY_IN_PROGRESS = "already_in_progress"
    FAILED = "failed"
    DISCARDED = "discarded"  # session moved on while the provider was working


@dataclass
class RecalculationResult:
    outcome: RecalculationOutcome
    reason: Optional[str] = None
    route: Optional[RouteModel] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == RecalculationOutcome.SUCCEEDED


class RecalculationCoordinator:
    """Fetches a replacement route and swaps it into the session atomically.

    The session is in RECALCULATING for the whole provider call, which is
    what keeps a second deviation from starting another request. Failures
    put the session back to ACTIVE with its previous route untouched.
    """

    def __init__(self, provider: RouteProvider, config: Optional[dict] = None,
                 logger: Optional[Logger] = None, profile: Optional[str] = None):
        self.provider = provider
        self.config = merge_config(config)
        self.logger = logger
        self.profile = profile or self.config["routing_profile"]

    def _log(self, message: str, data: dict | None = None):
        if self.logger:
            self.logger.log(message, data)

    async def request_recalculation(self, session: NavigationSession,
                                    current_fix: Optional[Fix]) -> RecalculationResult:
        if session.state == NavigationState.RECALCULATING:
            return RecalculationResult(RecalculationOutcome.ALREADY_IN_PROGRESS)

        if session.state != NavigationState.ACTIVE:
            return RecalculationResult(RecalculationOutcome.FAILED,
                                       f"session is {session.state.value}")

        if current_fix is None or not is_valid_coordinate(current_fix.lat, current_fix.lon):
            return RecalculationResult(RecalculationOutcome.FAILED, "no valid position")

        origin = current_fix.point
        destination = session.destination
        token = session.begin_recalculation()
        self._log("Recalculating route", {
            "from": origin.to_dict(),
            "to": destination.to_dict(),
            "profile": self.profile,
        })

        try:
            route = await self.provider.fetch_route(origin, destination, self.profile)
        except RouteUnavailableError as e:
            if session.fail_recalculation(token):
                self._log("Recalculation failed", {"reason": str(e)})
                return RecalculationResult(RecalculationOutcome.FAILED, str(e))
            self._log("Recalculation failure ignored", {"reason": str(e), "state": session.state.value})
            return RecalculationResult(RecalculationOutcome.DISCARDED, str(e))
        except BaseException as e:
            # Cancellation or a provider bug: leave RECALCULATING before propagating
            if session.fail_recalculation(token):
                self._log("Recalculation aborted", {"error": repr(e)})
            raise

        progress, remaining = compute_progress(route, origin, 0)
        if not session.complete_recalculation(token, route, progress, remaining):
            self._log("Recalculated route discarded", {"state": session.state.value})
            return RecalculationResult(RecalculationOutcome.DISCARDED, "session changed", route)

        self._log("Route recalculated", {
            "steps": len(route),
            "distance": round(route.total_distance),
            "progress": progress,
        })
        return RecalculationResult(RecalculationOutcome.SUCCEEDED, route=route)
