"""GPS fix normalisation, trace playback and recording."""

import json
import math
import time
from datetime import datetime
from typing import Optional

from .config import CONFIG
from .errors import InvalidInputError
from .geo import is_valid_coordinate
from .models import Fix, GeoPoint, SessionUpdate

LAT_KEYS = ("lat", "latitude")
LON_KEYS = ("lon", "lng", "longitude")


def _to_float(value) -> Optional[float]:
    """Number or numeric string as a finite float, else None"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def _first(raw: dict, keys: tuple[str, ...]):
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_point(raw) -> GeoPoint:
    """Turn any accepted coordinate shape into a GeoPoint.

    Accepts GeoPoint/Fix objects, [lat, lon] pairs and dicts keyed
    lat/latitude and lon/lng/longitude, optionally nested under "coords".
    """
    if isinstance(raw, GeoPoint):
        lat, lon = raw.lat, raw.lon
    elif isinstance(raw, Fix):
        lat, lon = raw.lat, raw.lon
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        lat, lon = _to_float(raw[0]), _to_float(raw[1])
    elif isinstance(raw, dict):
        source = raw["coords"] if isinstance(raw.get("coords"), dict) else raw
        lat = _to_float(_first(source, LAT_KEYS))
        lon = _to_float(_first(source, LON_KEYS))
    else:
        raise InvalidInputError(f"Unrecognised coordinate: {raw!r}")

    if not is_valid_coordinate(lat, lon):
        raise InvalidInputError(f"Invalid coordinate: {raw!r}")
    return GeoPoint(float(lat), float(lon))


def normalize_fix(raw, default_timestamp: Optional[float] = None) -> Fix:
    """Turn a raw position report into a Fix.

    Optional fields that are missing or not numeric become None.
    """
    if isinstance(raw, Fix):
        point = normalize_point(raw)
        return Fix(point.lat, point.lon, raw.accuracy, raw.heading, raw.speed,
                   raw.timestamp if raw.timestamp is not None else default_timestamp)

    point = normalize_point(raw)
    source = raw
    if isinstance(raw, dict) and isinstance(raw.get("coords"), dict):
        # Browser Geolocation shape: {"coords": {...}, "timestamp": ...}
        source = dict(raw["coords"])
        source.setdefault("timestamp", raw.get("timestamp"))
    if not isinstance(source, dict):
        return Fix(point.lat, point.lon, timestamp=default_timestamp)

    timestamp = _to_float(source.get("timestamp"))
    return Fix(
        lat=point.lat,
        lon=point.lon,
        accuracy=_to_float(source.get("accuracy")),
        heading=_to_float(_first(source, ("heading", "bearing"))),
        speed=_to_float(source.get("speed")),
        timestamp=timestamp if timestamp is not None else default_timestamp,
    )


class GPSPlayback:
    """Plays back a recorded GPS trace file"""

    def __init__(self, playback_path: str, speed: float = 1.0):
        self.playback_path = playback_path
        self.speed = speed
        self.trace: list[dict] = []
        self.index = 0
        self.last_fix: Optional[Fix] = None
        self.consecutive_failures = 0

        with open(playback_path) as f:
            data = json.load(f)
            self.trace = data["trace"]

    def current_elapsed(self) -> float:
        """Elapsed seconds of the entry last returned"""
        if self.index <= 0:
            return 0.0
        return float(self.trace[self.index - 1].get("elapsed", 0))

    def get_location(self) -> Optional[Fix]:
        """Get next fix from trace sequentially.

        Returns None for entries without a usable location.
        """
        if self.index >= len(self.trace):
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry.get("location"):
            try:
                fix = normalize_fix(entry["location"], default_timestamp=entry.get("timestamp"))
            except InvalidInputError:
                self.consecutive_failures += 1
                return None
            self.last_fix = fix
            self.consecutive_failures = 0
            return fix

        self.consecutive_failures += 1
        return None

    def get_poll_interval(self) -> float:
        """Seconds to wait before the next entry, scaled by playback speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return CONFIG["gps_poll_interval"] / self.speed

        delta = self.trace[self.index].get("elapsed", 0) - self.trace[self.index - 1].get("elapsed", 0)
        return max(0.0, delta / self.speed)

    def is_finished(self) -> bool:
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        return f"Playback: {self.consecutive_failures} failures ({progress})"


class TraceRecorder:
    """Records processed fixes and their outcome to a trace file"""

    def __init__(self, record_path: str):
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def record(self, fix: Optional[Fix], update: Optional[SessionUpdate] = None,
               elapsed: Optional[float] = None):
        entry = {
            "elapsed": elapsed if elapsed is not None else time.time() - self.start_time,
            "timestamp": fix.timestamp if fix and fix.timestamp is not None else time.time(),
            "location": fix.to_dict() if fix else None,
        }
        if update is not None:
            entry["update"] = update.summary()
        self.trace.append(entry)

    def save(self):
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace,
            }, f, indent=2)
