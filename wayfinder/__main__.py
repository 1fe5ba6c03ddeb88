#!/usr/bin/env python3
"""
Wayfinder - Turn-by-turn pedestrian navigation engine

Replays a recorded GPS trace against a route and reports what the
navigation engine did with it.

Usage:
    python -m wayfinder ROUTE TRACE [options]

Options:
    --speed FACTOR    Playback speed multiplier (default: 1.0)
    --realtime        Sleep between fixes following the trace timing
    --log FILE        Log file path
    --record FILE     Save processed fixes and their outcome to JSON
    --html FILE       Output session visualization to HTML file
    --ors             Recalculate with OpenRouteService (needs ORS_API_KEY)
    --profile NAME    Routing profile (default: foot-walking)
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from .app import Navigator
from .clock import ManualClock
from .config import CONFIG
from .errors import RouteUnavailableError
from .gps import GPSPlayback, TraceRecorder
from .logger import Logger
from .models import RouteModel
from .providers import OpenRouteServiceProvider, StraightLineProvider, load_route_file
from .session import NavigationSession
from .sink import LoggingEventSink


async def replay(navigator: Navigator, route: RouteModel, playback: GPSPlayback,
                 clock: ManualClock, recorder: Optional[TraceRecorder] = None,
                 realtime: bool = False) -> NavigationSession:
    """Feed every trace entry to the navigator with the clock following the trace"""
    navigator.start_with_route(route, route.polyline[-1])

    while not playback.is_finished():
        fix = playback.get_location()
        elapsed = playback.current_elapsed()
        clock.set(elapsed * 1000)

        if fix is None:
            if recorder:
                recorder.record(None, elapsed=elapsed)
        else:
            update = await navigator.handle_fix(fix)
            if recorder:
                recorder.record(fix, update, elapsed)
            # Keep replays deterministic: settle the new route before the next fix
            if navigator.recalculation_pending:
                await navigator.wait_for_recalculation()

        if navigator.session.is_terminal:
            break
        if realtime:
            await asyncio.sleep(playback.get_poll_interval())

    return navigator.session


def print_summary(session: NavigationSession, playback: GPSPlayback):
    stats = session.stats
    print()
    print("=" * 40)
    print(f"State:          {session.state.value}")
    print(f"Trace entries:  {playback.index}/{len(playback.trace)}")
    print(f"Fixes:          {stats.fixes_received} received, {stats.fixes_accepted} accepted, "
          f"{stats.fixes_debounced} debounced, {stats.fixes_rejected} rejected")
    print(f"Recalculations: {stats.recalculations} "
          f"({stats.recalculations_succeeded} ok, {stats.recalculations_failed} failed)")
    print(f"Progress:       {session.progress_percent}%")
    if session.remaining_distance is not None:
        print(f"Remaining:      {session.remaining_distance:.0f}m")
    print("=" * 40)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay a GPS trace through the Wayfinder navigation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("route", help="Route JSON file (OpenRouteService GeoJSON)")
    parser.add_argument("trace", help="GPS trace JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--realtime", action="store_true",
                        help="Sleep between fixes following the trace timing")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path")
    parser.add_argument("--record", metavar="FILE",
                        help="Save processed fixes and their outcome to JSON")
    parser.add_argument("--html", metavar="FILE",
                        help="Output session visualization to HTML file")
    parser.add_argument("--ors", action="store_true",
                        help="Recalculate with OpenRouteService (needs ORS_API_KEY)")
    parser.add_argument("--profile", default=CONFIG["routing_profile"],
                        help=f"Routing profile (default: {CONFIG['routing_profile']})")

    args = parser.parse_args(argv)

    if args.speed <= 0:
        parser.error("--speed must be positive")
    for path in (args.route, args.trace):
        if not Path(path).exists():
            print(f"File not found: {path}")
            return 1

    try:
        route = load_route_file(args.route)
    except RouteUnavailableError as e:
        print(f"Cannot load route: {e}")
        return 1

    playback = GPSPlayback(args.trace, args.speed)
    recorder = TraceRecorder(args.record) if args.record or args.html else None
    provider = OpenRouteServiceProvider() if args.ors else StraightLineProvider()
    clock = ManualClock()

    with Logger(args.log, title=f"Replay {args.trace} along {args.route}") as logger:
        logger.log("Loaded trace", {"path": args.trace, "entries": len(playback.trace)})
        navigator = Navigator(
            provider,
            sink=LoggingEventSink(logger),
            clock=clock,
            logger=logger,
            profile=args.profile,
        )
        session = asyncio.run(replay(navigator, route, playback, clock, recorder, args.realtime))

    print_summary(session, playback)

    if args.record:
        recorder.save()
        print(f"Session trace saved to {args.record} ({len(recorder.trace)} entries)")
    if args.html:
        from .visualize import create_session_map
        create_session_map(route, recorder.trace, args.html)
        print(f"Session map saved to {args.html}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
