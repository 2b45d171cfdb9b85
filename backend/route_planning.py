"""Trip route planning: the outer seed -> validate -> snap -> shape loop.

Each outer attempt starts from a brand-new waypoint seed. Any stage failure
discards the attempt; the first attempt that survives every stage is returned.
Nothing partial is ever returned.
"""

import asyncio
import logging

from errors import (
    ExhaustedAttemptsFailure,
    RoutePlanningError,
    SeedGenerationFailure,
    SeedValidationFailure,
)
from models import TripPlan, Waypoint
from network_snapping import snap_waypoints
from openrouteservice_client import OpenRouteServiceClient
from route_rules import TRIP_TYPES, RouteRules
from route_shaping import shape_route
from waypoint_seeds import WaypointSeedGenerator
from waypoint_validation import is_valid

logger = logging.getLogger(__name__)

MAX_PLANNING_ATTEMPTS: int = 6
# Pause before the next attempt after an unusable seed / a snap or shape failure.
INVALID_SEED_DELAY_S: float = 0.8
ROUTE_FAILURE_DELAY_S: float = 0.9


async def plan_route(
    location_name: str,
    trip_type: str,
    *,
    seed_generator: WaypointSeedGenerator | None = None,
    ors_client: OpenRouteServiceClient | None = None,
    rules: RouteRules | None = None,
) -> TripPlan:
    """Plans a hiking loop or a two-day cycling route around a place.

    Args:
        location_name: Free-text place name.
        trip_type: ``"hiking"`` or ``"cycling"``.
        seed_generator: Optional shared generator. Share one across requests
            so preset locations do not repeat the same preset back to back.
        ors_client: Optional pre-constructed OpenRouteService client.
        rules: Distance limits; defaults to the environment-configured ones.

    Returns:
        The shaped ``TripPlan``.

    Raises:
        ValueError: If ``trip_type`` is not supported.
        ExhaustedAttemptsFailure: If every attempt failed.
    """
    if trip_type not in TRIP_TYPES:
        raise ValueError(f"Unsupported trip type: {trip_type!r}")

    rules = rules or RouteRules()
    seeds = seed_generator or WaypointSeedGenerator(rules=rules)
    ors = ors_client or OpenRouteServiceClient()

    logger.info("Route planning started: %s, %s", location_name, trip_type)

    for attempt in range(1, MAX_PLANNING_ATTEMPTS + 1):
        try:
            waypoints = await _usable_seed(
                seeds, location_name, trip_type, is_retry=attempt > 1
            )
        except RoutePlanningError as exc:
            logger.warning("Attempt %d: %s", attempt, exc)
            await asyncio.sleep(INVALID_SEED_DELAY_S)
            continue

        try:
            snapped = await snap_waypoints(ors, waypoints, trip_type)
            plan = await shape_route(ors, snapped, trip_type, rules)
        except RoutePlanningError as exc:
            logger.warning(
                "Attempt %d: routing failed (%s); retrying with new waypoints",
                attempt, exc,
            )
            await asyncio.sleep(ROUTE_FAILURE_DELAY_S)
            continue

        logger.info(
            "Route planning complete on attempt %d: %.1f km over %d day(s)",
            attempt, plan.total_distance_km, len(plan.daily_routes),
        )
        return plan

    logger.error(
        "Route planning gave up after %d attempts: %s, %s",
        MAX_PLANNING_ATTEMPTS, location_name, trip_type,
    )
    raise ExhaustedAttemptsFailure(
        "Unable to generate a realistic route after multiple attempts."
    )


async def _usable_seed(
    seeds: WaypointSeedGenerator,
    location_name: str,
    trip_type: str,
    *,
    is_retry: bool,
) -> list[Waypoint]:
    payload = await seeds.generate(location_name, trip_type, is_retry=is_retry)
    if payload is None or not isinstance(payload.get("waypoints"), list):
        raise SeedGenerationFailure("Waypoint model returned no usable JSON")

    raw = payload["waypoints"]
    if not is_valid(raw):
        raise SeedValidationFailure(
            f"Rejected seed of {len(raw)} waypoints (invalid or nearly straight)"
        )
    return [
        Waypoint(lat=wp["lat"], lng=wp["lng"], name=str(wp.get("name") or ""))
        for wp in raw
    ]
