"""Central error types used across Wayfinder."""

from __future__ import annotations


class NavigationError(RuntimeError):
    """Base error for navigation failures."""


class InvalidInputError(NavigationError, ValueError):
    """Raised when a fix or coordinate arriving at a boundary is malformed."""


class InvalidDestinationError(InvalidInputError):
    """Raised when navigation is started without a usable destination."""


class EmptyRouteError(NavigationError, ValueError):
    """Raised when a route has too few points or no instructions."""


class IndexOutOfRangeError(NavigationError, IndexError):
    """Raised when an instruction index falls outside the route."""


class RouteUnavailableError(NavigationError):
    """Raised when a route provider cannot produce a route (network or parsing)."""


class InvalidStateError(NavigationError):
    """Raised when a session operation is not allowed in the current state."""


__all__ = [
    "NavigationError",
    "InvalidInputError",
    "InvalidDestinationError",
    "EmptyRouteError",
    "IndexOutOfRangeError",
    "RouteUnavailableError",
    "InvalidStateError",
]
