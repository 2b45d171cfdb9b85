"""Moves seed waypoints onto the routable road/trail network."""

import logging
import math
from collections.abc import Sequence

from errors import ExternalServiceFailure, SnapFailure
from geo_math import haversine_distance
from models import Waypoint
from openrouteservice_client import OpenRouteServiceClient, profile_for

logger = logging.getLogger(__name__)

# Search radii tried in order; the first one that yields enough points wins.
SNAP_RADII: tuple[int, ...] = (200, 400, 800)
# Fewer snapped points than this cannot make a plausible route.
MIN_SNAPPED: int = 3
# Snapped points closer than this to an accepted point are duplicates.
DEDUP_METERS: float = 30


def _is_lng_lat(value) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(
            isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
            for v in value
        )
    )


def usable_locations(response: dict) -> list[list[float]]:
    """Extracts well-formed [lng, lat] pairs from a snap response.

    Null entries (waypoints with no edge inside the radius) and malformed
    entries are dropped.
    """
    out: list[list[float]] = []
    for item in response.get("locations") or []:
        location = item.get("location") if isinstance(item, dict) else None
        if _is_lng_lat(location):
            out.append([float(location[0]), float(location[1])])
    return out


def dedupe(
    points: Sequence[Sequence[float]], min_distance_m: float = DEDUP_METERS
) -> list[list[float]]:
    """Greedy spatial dedup: first-seen wins, later points too close are dropped."""
    kept: list[list[float]] = []
    for p in points:
        if all(haversine_distance(prev, p) > min_distance_m for prev in kept):
            kept.append(list(p))
    return kept


async def snap_waypoints(
    ors: OpenRouteServiceClient,
    waypoints: Sequence[Waypoint],
    trip_type: str,
) -> list[list[float]]:
    """Returns at least ``MIN_SNAPPED`` deduplicated on-network [lng, lat] points.

    Raises:
        SnapFailure: If no radius in ``SNAP_RADII`` yields enough points.
    """
    profile = profile_for(trip_type)
    locations = [[wp.lng, wp.lat] for wp in waypoints]

    last_error: ExternalServiceFailure | None = None
    for radius in SNAP_RADII:
        try:
            response = await ors.snap(profile, locations, radius)
        except ExternalServiceFailure as exc:
            logger.warning("Snap request failed at radius=%dm: %s", radius, exc)
            last_error = exc
            continue

        snapped = dedupe(usable_locations(response))
        if len(snapped) >= MIN_SNAPPED:
            logger.info(
                "Snapped %d/%d waypoints at radius=%dm",
                len(snapped), len(locations), radius,
            )
            return snapped
        logger.warning(
            "Snap with radius=%dm returned only %d usable points; trying larger radius",
            radius, len(snapped),
        )

    raise SnapFailure(
        f"Too few snapped waypoints (< {MIN_SNAPPED}) at radii {list(SNAP_RADII)}"
    ) from last_error
