"""Configuration settings for Wayfinder."""

CONFIG = {
    # Fix handling
    "debounce_distance": 3,  # meters - smaller moves are ignored...
    "force_refresh_interval": 10,  # seconds - ...unless this long since the last accepted fix
    "gps_poll_interval": 1,  # seconds between playback polls
    "default_gps_accuracy": 15,  # meters - assumed when a fix reports none
    # Step cursor / arrival
    "step_advance_radius": 20,  # meters from the next anchor to advance the cursor
    "arrival_radius": 20,  # meters from the destination
    # Turn approach tiers (meters, most distant first)
    "tier_thresholds": (100, 50, 20),
    "tier_reset_distance": 150,  # meters - re-arm tiers beyond this
    # Deviation: distance > factor * accuracy + margin
    "deviation_accuracy_factor": 2,
    "deviation_margin": 30,  # meters
    "stationary_speed": 0.5,  # m/s - slower users never start a deviation
    # Time estimates
    "walking_speed": 1.4,  # m/s (5 km/h)
    "min_plausible_speed": 0.5,  # m/s - reported speeds outside this range
    "max_plausible_speed": 10,  # m/s   fall back to walking_speed
    # Recalculation
    "routing_profile": "foot-walking",
    "recalculation_retry_interval": None,  # seconds - None retries only on a new deviation
    # OpenRouteService
    "ors_base_url": "https://api.openrouteservice.org/v2/directions",
    "ors_timeout": 30,  # seconds
}


def merge_config(overrides: dict | None = None) -> dict:
    """Return a copy of CONFIG with overrides applied. Unknown keys raise KeyError."""
    merged = dict(CONFIG)
    for key, value in (overrides or {}).items():
        if key not in CONFIG:
            raise KeyError(f"Unknown config key: {key}")
        merged[key] = value
    return merged
