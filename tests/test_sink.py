"""Tests for guidance event dispatch."""

from wayfinder.logger import Logger
from wayfinder.models import SessionUpdate, TierCrossing, UpdateStatus
from wayfinder.sink import GuidanceEventSink, LoggingEventSink, dispatch_update

from conftest import RecordingSink


def test_dispatch_order(line_route):
    update = SessionUpdate(
        status=UpdateStatus.ACCEPTED,
        step_advanced=True,
        instruction=line_route.step_at(1),
        tier_crossings=[TierCrossing(1, 3, 12.0)],
        deviation_started=True,
        progress_percent=42,
        arrived=True,
    )
    sink = RecordingSink()
    dispatch_update(sink, update, line_route)
    assert sink.events == [
        ("step_changed", 1),
        ("turn_approach", (1, 3)),
        ("deviation_started", None),
        ("progress", 42),
        ("arrived", None),
    ]


def test_dispatch_skips_unaccepted_updates(line_route):
    sink = RecordingSink()
    for status in (UpdateStatus.REJECTED, UpdateStatus.NO_SIGNIFICANT_CHANGE,
                   UpdateStatus.PAUSED, UpdateStatus.INACTIVE):
        dispatch_update(sink, SessionUpdate(status=status), line_route)
    assert sink.events == []


def test_dispatch_without_sink(line_route):
    dispatch_update(None, SessionUpdate(status=UpdateStatus.ACCEPTED), line_route)


def test_sink_errors_are_logged_not_raised(line_route):
    logged = []

    class BrokenSink(RecordingSink):
        def on_progress(self, update):
            raise RuntimeError("speaker unplugged")

    sink = BrokenSink()
    logger = Logger(callback=lambda message, data: logged.append((message, data)), echo=False)
    update = SessionUpdate(status=UpdateStatus.ACCEPTED, deviation_cleared=True, arrived=True)
    dispatch_update(sink, update, line_route, logger)

    assert sink.names() == ["deviation_cleared", "arrived"]
    assert logged[0][0] == "Guidance sink error"
    assert logged[0][1]["event"] == "progress"


def test_base_sink_is_noop(line_route):
    update = SessionUpdate(status=UpdateStatus.ACCEPTED, step_advanced=True,
                           instruction=line_route.step_at(1), arrived=True)
    dispatch_update(GuidanceEventSink(), update, line_route)


def test_logging_sink_writes_events(line_route):
    logged = []
    logger = Logger(callback=lambda message, data: logged.append(message), echo=False)
    sink = LoggingEventSink(logger)
    update = SessionUpdate(
        status=UpdateStatus.ACCEPTED,
        step_advanced=True,
        instruction=line_route.step_at(1),
        tier_crossings=[TierCrossing(2, 1, 90.0)],
        remaining_distance=100.0,
        estimated_time_remaining=70.0,
    )
    dispatch_update(sink, update, line_route, logger)
    sink.on_recalculated(line_route)
    sink.on_recalculation_failed("timeout")

    assert logged[0].startswith("STEP:")
    assert logged[1].startswith("TURN:")
    assert logged[2] == "PROGRESS"
    assert logged[-2:] == ["RECALCULATED", "RECALCULATION FAILED"]
