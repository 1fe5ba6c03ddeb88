"""Tests for route recalculation."""

import asyncio

import pytest

from wayfinder.errors import RouteUnavailableError
from wayfinder.models import Fix, GeoPoint, NavigationState
from wayfinder.providers import RouteProvider, StraightLineProvider
from wayfinder.recalc import RecalculationCoordinator, RecalculationOutcome

from conftest import StaticRouteProvider

OFF_ROUTE = Fix(0.0007, 0.001, accuracy=15, speed=1.4)


class FailingProvider(RouteProvider):
    def __init__(self, error=None):
        self.error = error or RouteUnavailableError("routing service down")
        self.calls = 0

    async def fetch_route(self, origin, destination, profile=None):
        self.calls += 1
        raise self.error


class GatedProvider(RouteProvider):
    """Blocks in fetch_route until release is set"""

    def __init__(self, route):
        self.route = route
        self.release = asyncio.Event()
        self.calls = 0

    async def fetch_route(self, origin, destination, profile=None):
        self.calls += 1
        await self.release.wait()
        return self.route


def test_recalculation_succeeds(session):
    coordinator = RecalculationCoordinator(StraightLineProvider())
    session.current_step_index = 1
    session.deviation_active = True

    result = asyncio.run(coordinator.request_recalculation(session, OFF_ROUTE))

    assert result.outcome == RecalculationOutcome.SUCCEEDED
    assert result.succeeded
    assert session.route is result.route
    assert session.route.polyline[0] == GeoPoint(0.0007, 0.001)
    assert session.state == NavigationState.ACTIVE
    assert session.current_step_index == 0
    assert not session.deviation_active
    assert session.progress_percent == 0
    assert session.remaining_distance == pytest.approx(result.route.total_distance)
    assert session.stats.recalculations_succeeded == 1


def test_recalculation_passes_profile(session, line_route):
    seen = []

    class ProfileProvider(RouteProvider):
        async def fetch_route(self, origin, destination, profile=None):
            seen.append((origin, destination, profile))
            return line_route

    coordinator = RecalculationCoordinator(ProfileProvider(), profile="wheelchair")
    asyncio.run(coordinator.request_recalculation(session, OFF_ROUTE))
    assert seen == [(GeoPoint(0.0007, 0.001), GeoPoint(0.0, 0.002), "wheelchair")]


def test_failed_recalculation_is_atomic(session):
    session.current_step_index = 1
    session.deviation_active = True
    route_before = session.route
    step_before = session.current_step_index

    provider = FailingProvider()
    coordinator = RecalculationCoordinator(provider)
    result = asyncio.run(coordinator.request_recalculation(session, OFF_ROUTE))

    assert result.outcome == RecalculationOutcome.FAILED
    assert result.reason == "routing service down"
    assert session.route is route_before
    assert session.current_step_index == step_before
    assert session.deviation_active
    assert session.state == NavigationState.ACTIVE
    assert session.stats.recalculations_failed == 1


def test_unexpected_provider_error_restores_active(session):
    coordinator = RecalculationCoordinator(FailingProvider(KeyError("bug")))
    route_before = session.route
    with pytest.raises(KeyError):
        asyncio.run(coordinator.request_recalculation(session, OFF_ROUTE))
    assert session.state == NavigationState.ACTIVE
    assert session.route is route_before


def test_second_request_while_in_progress(session, turn_route):
    provider = GatedProvider(turn_route)
    coordinator = RecalculationCoordinator(provider)

    async def scenario():
        task = asyncio.create_task(coordinator.request_recalculation(session, OFF_ROUTE))
        await asyncio.sleep(0)
        assert session.state == NavigationState.RECALCULATING
        second = await coordinator.request_recalculation(session, OFF_ROUTE)
        provider.release.set()
        first = await task
        return first, second

    first, second = asyncio.run(scenario())
    assert second.outcome == RecalculationOutcome.ALREADY_IN_PROGRESS
    assert first.outcome == RecalculationOutcome.SUCCEEDED
    assert provider.calls == 1
    assert session.route is turn_route


def test_cancel_during_recalculation_discards_route(session, turn_route):
    provider = GatedProvider(turn_route)
    coordinator = RecalculationCoordinator(provider)

    async def scenario():
        task = asyncio.create_task(coordinator.request_recalculation(session, OFF_ROUTE))
        await asyncio.sleep(0)
        session.cancel()
        provider.release.set()
        return await task

    result = asyncio.run(scenario())
    assert result.outcome == RecalculationOutcome.DISCARDED
    assert session.state == NavigationState.CANCELLED
    assert session.route is None


def test_task_cancellation_restores_active(session, turn_route):
    provider = GatedProvider(turn_route)
    coordinator = RecalculationCoordinator(provider)

    async def scenario():
        task = asyncio.create_task(coordinator.request_recalculation(session, OFF_ROUTE))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert session.state == NavigationState.ACTIVE
    assert session.route is not turn_route


@pytest.mark.parametrize("prepare", [
    lambda s: s.pause(),
    lambda s: s.mark_arrived(),
    lambda s: s.cancel(),
])
def test_recalculation_requires_active_session(session, prepare):
    prepare(session)
    state = session.state
    provider = StaticRouteProvider(session.route)
    result = asyncio.run(RecalculationCoordinator(provider).request_recalculation(session, OFF_ROUTE))
    assert result.outcome == RecalculationOutcome.FAILED
    assert session.state == state
    assert provider.calls == 0


def test_recalculation_requires_position(session):
    provider = StraightLineProvider()
    coordinator = RecalculationCoordinator(provider)
    for fix in (None, Fix(float("nan"), 0.0)):
        result = asyncio.run(coordinator.request_recalculation(session, fix))
        assert result.outcome == RecalculationOutcome.FAILED
    assert session.state == NavigationState.ACTIVE
    assert session.stats.recalculations == 0


def test_recalculation_logs_outcome(session):
    messages = []

    class ListLogger:
        def log(self, message, data=None):
            messages.append(message)

    coordinator = RecalculationCoordinator(FailingProvider(), logger=ListLogger())
    asyncio.run(coordinator.request_recalculation(session, OFF_ROUTE))
    assert messages == ["Recalculating route", "Recalculation failed"]
