"""Distance and angle helpers for ``[lng, lat]`` coordinate sequences.

Everything here is pure: no I/O, no logging, inputs are never mutated.
"""

import math
from collections.abc import Sequence

EARTH_RADIUS_M: float = 6_371_000

# A path whose end is farther than this from its start is not a loop.
LOOP_CLOSE_METERS: float = 120


def haversine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Returns the great-circle distance in metres between two [lng, lat] points."""
    lng1, lat1 = a[0], a[1]
    lng2, lat2 = b[0], b[1]
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = lat2_r - lat1_r
    dlng = math.radians(lng2 - lng1)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def decimate(coords: Sequence, keep_every: int = 2) -> list:
    """Keeps the first, the last, and every ``keep_every``-th point.

    Paths of two points or fewer are returned unchanged (as a new list).
    """
    if len(coords) <= 2:
        return list(coords)
    last = len(coords) - 1
    return [
        c for i, c in enumerate(coords)
        if i == 0 or i == last or i % keep_every == 0
    ]


def cumulative_distances(coords: Sequence[Sequence[float]]) -> list[float]:
    """Returns the running path length in metres up to each index."""
    if not coords:
        return []
    cum = [0.0]
    for i in range(1, len(coords)):
        cum.append(cum[-1] + haversine_distance(coords[i - 1], coords[i]))
    return cum


def line_length(coords: Sequence[Sequence[float]]) -> float:
    """Returns the total haversine length of the path in metres."""
    cum = cumulative_distances(coords)
    return cum[-1] if cum else 0.0


def is_nearly_straight(
    points: Sequence[Sequence[float]],
    angle_threshold_deg: float = 170,
    ratio_threshold: float = 0.7,
) -> bool:
    """Returns True if the path is close to a straight line.

    At every interior point the angle between the segment back to the
    previous point and the segment on to the next point is measured; 180°
    means the path carries straight on. The path counts as straight when more
    than ``ratio_threshold`` of those angles exceed ``angle_threshold_deg``.
    Zero-length segments are skipped.

    Works on any consistent 2D pair ordering ((lat, lng) or (lng, lat)).
    """
    if len(points) < 3:
        return False

    straight = 0
    measured = 0
    for i in range(1, len(points) - 1):
        prev, curr, nxt = points[i - 1], points[i], points[i + 1]
        back = (prev[0] - curr[0], prev[1] - curr[1])
        ahead = (nxt[0] - curr[0], nxt[1] - curr[1])
        len_back = math.hypot(*back)
        len_ahead = math.hypot(*ahead)
        if len_back == 0 or len_ahead == 0:
            continue

        cos_theta = (back[0] * ahead[0] + back[1] * ahead[1]) / (len_back * len_ahead)
        angle = math.degrees(math.acos(max(-1.0, min(1.0, cos_theta))))
        measured += 1
        if angle > angle_threshold_deg:
            straight += 1

    return measured > 0 and straight / measured > ratio_threshold


def close_loop(
    coords: Sequence[Sequence[float]],
    close_threshold_m: float = LOOP_CLOSE_METERS,
) -> list:
    """Returns the path with its start appended if the ends are too far apart."""
    out = list(coords)
    if len(out) < 2:
        return out
    if haversine_distance(out[0], out[-1]) > close_threshold_m:
        out.append(out[0])
    return out


def route_center(coords: Sequence[Sequence[float]]) -> tuple[float, float] | None:
    """Returns the mean (lat, lng) of a [lng, lat] path, or None if empty."""
    finite = [
        (c[1], c[0]) for c in coords
        if len(c) >= 2 and math.isfinite(c[0]) and math.isfinite(c[1])
    ]
    if not finite:
        return None
    lat = sum(p[0] for p in finite) / len(finite)
    lng = sum(p[1] for p in finite) / len(finite)
    return lat, lng
