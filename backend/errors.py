"""Failure types raised by the route planning pipeline.

Every stage failure below the orchestrator derives from ``RoutePlanningError``
so ``route_planning.plan_route`` can catch them in one place and retry with a
fresh seed. Only ``ExhaustedAttemptsFailure`` escapes to callers.
"""


class RoutePlanningError(Exception):
    """Base class for all route planning failures."""


class SeedGenerationFailure(RoutePlanningError):
    """The waypoint model produced no parseable waypoint JSON."""


class SeedValidationFailure(RoutePlanningError):
    """The seed waypoints are malformed, out of range, or nearly collinear."""


class SnapFailure(RoutePlanningError):
    """Too few waypoints could be snapped to the routable network."""


class ShapingFailure(RoutePlanningError):
    """The route could not be brought within the trip's distance limits."""


class ExternalServiceFailure(RoutePlanningError):
    """A snap or directions request failed at the HTTP/transport level.

    Attributes:
        status_code: HTTP status returned by the service, or ``None`` for
            timeouts and connection errors.
        message: The service's own error message when one was returned.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExhaustedAttemptsFailure(RoutePlanningError):
    """Every planning attempt failed; no route can be offered."""
