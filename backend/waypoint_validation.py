"""Sanity checks for model-generated waypoint seeds."""

import math
from typing import Any

from geo_math import is_nearly_straight

MIN_WAYPOINTS: int = 3
# Both |lat| and |lng| below this means the model fell back to (0, 0).
NEAR_ORIGIN_DEG: float = 0.5


def _coord(waypoint: Any, key: str) -> Any:
    if isinstance(waypoint, dict):
        return waypoint.get(key)
    return getattr(waypoint, key, None)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def has_valid_coordinates(waypoint: Any) -> bool:
    """True if the waypoint has numeric, in-range, non-degenerate lat/lng."""
    lat = _coord(waypoint, "lat")
    lng = _coord(waypoint, "lng")
    if not (_is_number(lat) and _is_number(lng)):
        return False
    if abs(lat) > 90 or abs(lng) > 180:
        return False
    return not (abs(lat) < NEAR_ORIGIN_DEG and abs(lng) < NEAR_ORIGIN_DEG)


def is_valid(waypoints: Any) -> bool:
    """Returns True if the seed is worth sending to the snap service.

    Accepts raw ``{"lat", "lng", "name"}`` dicts straight from the model as
    well as ``Waypoint`` objects. Rejects seeds with fewer than three points,
    any malformed coordinate, or a nearly straight shape.
    """
    if not isinstance(waypoints, list) or len(waypoints) < MIN_WAYPOINTS:
        return False
    if not all(has_valid_coordinates(wp) for wp in waypoints):
        return False
    points = [(_coord(wp, "lat"), _coord(wp, "lng")) for wp in waypoints]
    return not is_nearly_straight(points)
