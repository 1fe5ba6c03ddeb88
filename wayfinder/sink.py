"""Outbound guidance events for the host UI."""

from typing import Optional

from .logger import Logger
from .models import RouteInstruction, RouteModel, SessionUpdate


class GuidanceEventSink:
    """Receiver for guidance side effects.

    Every method is a no-op here; hosts override the ones they render.
    Calls are fire-and-forget: return values are ignored.
    """

    def on_step_changed(self, instruction: RouteInstruction):
        pass

    def on_progress(self, update: SessionUpdate):
        pass

    def on_turn_approach(self, instruction: RouteInstruction, tier: int):
        pass

    def on_deviation_started(self):
        pass

    def on_deviation_cleared(self):
        pass

    def on_arrived(self):
        pass

    def on_recalculated(self, route: RouteModel):
        pass

    def on_recalculation_failed(self, reason: str):
        pass


class LoggingEventSink(GuidanceEventSink):
    """Writes every guidance event to a Logger"""

    def __init__(self, logger: Logger):
        self.logger = logger

    def on_step_changed(self, instruction: RouteInstruction):
        self.logger.log(f"STEP: {instruction.text}", {"index": instruction.index,
                                                      "maneuver": instruction.maneuver.value})

    def on_progress(self, update: SessionUpdate):
        self.logger.log("PROGRESS", {
            "progress": update.progress_percent,
            "remaining": round(update.remaining_distance or 0),
            "eta": round(update.estimated_time_remaining or 0),
        })

    def on_turn_approach(self, instruction: RouteInstruction, tier: int):
        self.logger.log(f"TURN: {instruction.text}", {"index": instruction.index, "tier": tier})

    def on_deviation_started(self):
        self.logger.log("DEVIATION: off route")

    def on_deviation_cleared(self):
        self.logger.log("DEVIATION: back on route")

    def on_arrived(self):
        self.logger.log("ARRIVED")

    def on_recalculated(self, route: RouteModel):
        self.logger.log("RECALCULATED", {"steps": len(route), "distance": round(route.total_distance)})

    def on_recalculation_failed(self, reason: str):
        self.logger.log("RECALCULATION FAILED", {"reason": reason})


def safe_notify(logger: Optional[Logger], name: str, func, *args):
    try:
        func(*args)
    except Exception as e:
        if logger:
            logger.log("Guidance sink error", {"event": name, "error": repr(e)})


def dispatch_update(sink: Optional[GuidanceEventSink], update: SessionUpdate,
                    route: Optional[RouteModel], logger: Optional[Logger] = None):
    """Forward the interesting parts of an accepted update to the sink.

    route is the route the update was computed against; it resolves the
    instruction indexes of tier crossings.
    """
    if sink is None or not update.accepted:
        return

    if update.step_advanced and update.instruction is not None:
        safe_notify(logger, "step_changed", sink.on_step_changed, update.instruction)

    if route is not None:
        for crossing in update.tier_crossings:
            instruction = route.step_at(crossing.instruction_index)
            safe_notify(logger, "turn_approach", sink.on_turn_approach, instruction, crossing.tier)

    if update.deviation_started:
        safe_notify(logger, "deviation_started", sink.on_deviation_started)
    if update.deviation_cleared:
        safe_notify(logger, "deviation_cleared", sink.on_deviation_cleared)

    safe_notify(logger, "progress", sink.on_progress, update)

    if update.arrived:
        safe_notify(logger, "arrived", sink.on_arrived)
