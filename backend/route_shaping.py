"""Builds the route geometry and bends it into the trip's distance limits.

Hiking trips must be a single-day loop inside [HIKING_MIN_KM, HIKING_MAX_KM].
Cycling trips are open two-day routes, neither day above the per-day cap.

When the first directions result is too long, candidate coordinate lists are
generated one strategy at a time and each is routed independently until one
comes back short enough:

  cycling:  decimate(2) -> decimate(3)
  hiking:   decimate(2) -> decimate(3) -> prefix 55% / 45% / 35% of the
            budget -> minimal two-point loop
"""

import logging
import math
import re
from collections.abc import Iterator, Sequence

from errors import ExternalServiceFailure, ShapingFailure
from geo_math import (
    LOOP_CLOSE_METERS,
    close_loop,
    cumulative_distances,
    decimate,
    haversine_distance,
    line_length,
)
from models import DailyRoute, LineString, RouteFeature, RoutePoint, TripPlan
from openrouteservice_client import OpenRouteServiceClient, profile_for
from route_rules import RouteRules

logger = logging.getLogger(__name__)

# keep_every values tried when a route is too long.
DECIMATION_STEPS: tuple[int, ...] = (2, 3)
# Share of the hiking max-distance budget kept by each prefix fallback.
HIKING_PREFIX_FRACTIONS: tuple[float, ...] = (0.55, 0.45, 0.35)
# Slack allowed on the per-day cycling cap.
DAY_CAP_TOLERANCE_KM: float = 0.1

AVOID_FEATURES: list[str] = ["ferries"]
EXTRA_INFO: list[str] = ["waytype", "steepness", "surface"]

# Some ORS deployments reject the optional "options" block.
_UNKNOWN_PARAM_RE = re.compile(r"Unknown parameter.*(options|avoid_features)", re.IGNORECASE)

# (label, candidate [lng, lat] coordinates)
Candidate = tuple[str, list[list[float]]]


# ---------------------------------------------------------------------------
# Directions
# ---------------------------------------------------------------------------


def directions_body(coords: Sequence[Sequence[float]], *, with_options: bool = True) -> dict:
    body = {
        "coordinates": [list(c) for c in coords],
        "instructions": True,
        "extra_info": EXTRA_INFO,
        "geometry_simplify": False,
    }
    if with_options:
        body["options"] = {"avoid_features": AVOID_FEATURES}
    return body


def _is_unknown_parameter(exc: ExternalServiceFailure) -> bool:
    return exc.status_code == 400 and bool(_UNKNOWN_PARAM_RE.search(exc.message or ""))


def _is_position(value) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(_is_finite_number(v) for v in value[:2])
    )


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _summary_value(summary: dict, key: str) -> float:
    value = summary.get(key)
    if value is None:
        return 0.0
    if not _is_finite_number(value) or value < 0:
        raise ExternalServiceFailure(f"Malformed route summary {key}: {value!r}")
    return float(value)


def read_feature(data: dict) -> RouteFeature:
    """Turns a directions response into a ``RouteFeature``.

    Accepts a FeatureCollection (first feature wins) or a bare Feature. The
    summary distance is used when present, otherwise the geometry is measured.
    Malformed positions are dropped; a malformed summary raises.
    """
    if not isinstance(data, dict):
        raise ExternalServiceFailure("No route found")
    if data.get("type") == "Feature":
        feature = data
    else:
        features = data.get("features") or []
        feature = features[0] if isinstance(features, list) and features else None
    if not isinstance(feature, dict):
        raise ExternalServiceFailure("No route found")

    geometry = feature.get("geometry")
    raw_coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not isinstance(raw_coords, list):
        raw_coords = []
    coords = [[float(c[0]), float(c[1])] for c in raw_coords if _is_position(c)]
    if len(coords) < 2:
        raise ExternalServiceFailure("No route found")

    properties = feature.get("properties")
    summary = properties.get("summary") if isinstance(properties, dict) else None
    if not isinstance(summary, dict):
        summary = {}
    meters = _summary_value(summary, "distance")
    seconds = _summary_value(summary, "duration")
    if not meters:
        meters = line_length(coords)
    return RouteFeature(coordinates=coords, distance_m=meters, duration_s=seconds)


async def build_route(
    ors: OpenRouteServiceClient,
    coords: Sequence[Sequence[float]],
    trip_type: str,
) -> RouteFeature:
    """Routes through ``coords``; retries once without ``options`` if rejected."""
    profile = profile_for(trip_type)
    try:
        data = await ors.directions(profile, directions_body(coords))
    except ExternalServiceFailure as exc:
        if not _is_unknown_parameter(exc):
            raise
        logger.warning("Directions rejected options (%s); retrying without", exc.message)
        data = await ors.directions(profile, directions_body(coords, with_options=False))
    return read_feature(data)


async def _first_within(
    ors: OpenRouteServiceClient,
    candidates: Iterator[Candidate],
    trip_type: str,
    max_km: float,
    current: RouteFeature,
) -> RouteFeature:
    """Routes each candidate in turn; stops at the first within ``max_km``."""
    feature = current
    for label, coords in candidates:
        logger.warning(
            "%s route %.1f km > %g km, trying %s",
            trip_type.capitalize(), feature.distance_km, max_km, label,
        )
        feature = await build_route(ors, coords, trip_type)
        logger.info("%s -> %.1f km", label, feature.distance_km)
        if feature.distance_km <= max_km:
            break
    return feature


# ---------------------------------------------------------------------------
# Candidate strategies
# ---------------------------------------------------------------------------


def prefix_within(coords: Sequence[Sequence[float]], budget_m: float) -> list[list[float]]:
    """Returns the shortest prefix reaching ``budget_m`` (at least two points)."""
    cum = cumulative_distances(coords)
    end = len(coords) - 1
    for i in range(1, len(cum)):
        if cum[i] >= budget_m:
            end = i
            break
    return [list(c) for c in coords[:max(2, end + 1)]]


def minimal_loop(coords: Sequence[Sequence[float]], target_radius_m: float) -> list[list[float]]:
    """Loop from the start out to the point nearest ``target_radius_m`` away."""
    start = coords[0]
    best = min(
        range(1, len(coords)),
        key=lambda i: abs(haversine_distance(start, coords[i]) - target_radius_m),
    )
    return close_loop([list(start), list(coords[best])])


def cycling_candidates(coordinates: list[list[float]]) -> Iterator[Candidate]:
    for keep_every in DECIMATION_STEPS:
        yield f"decimation keep_every={keep_every}", decimate(coordinates, keep_every)


def hiking_candidates(
    coordinates: list[list[float]],
    snapped: list[list[float]],
    rules: RouteRules,
) -> Iterator[Candidate]:
    # Prefix and minimal-loop fallbacks start again from the snapped points,
    # not from the already-decimated list.
    for keep_every in DECIMATION_STEPS:
        yield (
            f"decimation keep_every={keep_every}",
            close_loop(decimate(coordinates, keep_every)),
        )
    budget_m = rules.hiking_max_km * 1000
    for fraction in HIKING_PREFIX_FRACTIONS:
        yield (
            f"prefix {fraction:.0%}",
            close_loop(prefix_within(snapped, budget_m * fraction)),
        )
    if len(snapped) >= 2:
        yield "minimal loop", minimal_loop(snapped, budget_m / (2 * math.pi))


# ---------------------------------------------------------------------------
# Day splitting
# ---------------------------------------------------------------------------


def split_two_days(feature: RouteFeature, max_km_per_day: float) -> tuple[list[RoutePoint], list[DailyRoute]]:
    """Splits a route into two days at the vertex nearest the day-1 target.

    Day 1 aims for half the distance, clamped so neither day exceeds the cap.
    Geometry lengths are scaled to the directions summary distance so both
    days add up to the route total.
    """
    coords = feature.coordinates
    if len(coords) < 3:
        raise ShapingFailure("Cycling route has too few points to split into two days")

    total_m = feature.distance_m
    total_km = total_m / 1000
    day1_target_km = min(total_km / 2, max_km_per_day)
    if total_km - day1_target_km > max_km_per_day:
        day1_target_km = total_km - max_km_per_day
    day1_target_m = max(0.0, day1_target_km) * 1000

    cum = cumulative_distances(coords)
    scale = total_m / cum[-1] if cum[-1] > 0 else 1.0
    split = min(
        range(1, len(coords) - 1),
        key=lambda i: abs(cum[i] * scale - day1_target_m),
    )

    day_meters = (cum[split] * scale, total_m - cum[split] * scale)
    points = [
        RoutePoint(lat=lat, lng=lng, day=1 if i <= split else 2, order=i)
        for i, (lng, lat) in enumerate(coords)
    ]
    daily_routes = [
        DailyRoute(
            day=day,
            distance_km=meters / 1000,
            duration_hours=feature.duration_s * (meters / max(total_m, 1)) / 3600,
            points=[p for p in points if p.day == day],
        )
        for day, meters in enumerate(day_meters, start=1)
    ]
    return points, daily_routes


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


async def shape_route(
    ors: OpenRouteServiceClient,
    snapped: list[list[float]],
    trip_type: str,
    rules: RouteRules | None = None,
) -> TripPlan:
    """Builds a ``TripPlan`` from snapped [lng, lat] points.

    Raises:
        ShapingFailure: If the distance limits cannot be met, or a directions
            request fails for any reason other than the tolerated
            unknown-parameter rejection.
    """
    rules = rules or RouteRules()
    try:
        if trip_type == "cycling":
            return await _shape_cycling(ors, snapped, rules)
        return await _shape_hiking(ors, snapped, rules)
    except ExternalServiceFailure as exc:
        raise ShapingFailure(f"Directions request failed: {exc}") from exc


async def _shape_cycling(
    ors: OpenRouteServiceClient, snapped: list[list[float]], rules: RouteRules
) -> TripPlan:
    coordinates = [list(c) for c in snapped]
    max_total_km = rules.cycling_max_total_km

    feature = await build_route(ors, coordinates, "cycling")
    if feature.distance_km > max_total_km:
        feature = await _first_within(
            ors, cycling_candidates(coordinates), "cycling", max_total_km, feature
        )
    if feature.distance_km > max_total_km:
        raise ShapingFailure(
            f"Cycling route too long: {feature.distance_km:.1f} km "
            f"(max {max_total_km:g} km total)."
        )
    if _ends_gap_m(feature) <= LOOP_CLOSE_METERS:
        raise ShapingFailure("Cycling route returns to its start; expected an open route.")

    points, daily_routes = split_two_days(feature, rules.cycling_max_km_per_day)
    cap = rules.cycling_max_km_per_day + DAY_CAP_TOLERANCE_KM
    if any(d.distance_km > cap for d in daily_routes):
        raise ShapingFailure(
            f"Cycling day distance exceeded {rules.cycling_max_km_per_day:g} km "
            f"(day1={daily_routes[0].distance_km:.1f}, "
            f"day2={daily_routes[1].distance_km:.1f})."
        )

    logger.info(
        "Cycling route shaped: %.1f km (day1=%.1f, day2=%.1f)",
        feature.distance_km, daily_routes[0].distance_km, daily_routes[1].distance_km,
    )
    return _trip_plan(feature, points, daily_routes)


async def _shape_hiking(
    ors: OpenRouteServiceClient, snapped: list[list[float]], rules: RouteRules
) -> TripPlan:
    original = [list(c) for c in snapped]
    coordinates = close_loop(original)

    feature = await build_route(ors, coordinates, "hiking")
    if feature.distance_km > rules.hiking_max_km:
        feature = await _first_within(
            ors,
            hiking_candidates(coordinates, original, rules),
            "hiking",
            rules.hiking_max_km,
            feature,
        )

    if not rules.hiking_min_km <= feature.distance_km <= rules.hiking_max_km:
        raise ShapingFailure(
            f"Hiking route distance {feature.distance_km:.1f} km out of range "
            f"({rules.hiking_min_km:g}-{rules.hiking_max_km:g} km)."
        )
    gap_m = _ends_gap_m(feature)
    if gap_m > LOOP_CLOSE_METERS:
        raise ShapingFailure(
            f"Hiking route is not a loop: ends are {gap_m:.0f} m apart."
        )

    points = [
        RoutePoint(lat=lat, lng=lng, day=1, order=i)
        for i, (lng, lat) in enumerate(feature.coordinates)
    ]
    daily_routes = [
        DailyRoute(
            day=1,
            distance_km=feature.distance_km,
            duration_hours=feature.duration_s / 3600,
            points=points,
        )
    ]
    logger.info("Hiking loop shaped: %.1f km", feature.distance_km)
    return _trip_plan(feature, points, daily_routes)


def _trip_plan(
    feature: RouteFeature, points: list[RoutePoint], daily_routes: list[DailyRoute]
) -> TripPlan:
    return TripPlan(
        geometry=LineString(coordinates=feature.coordinates),
        points=points,
        daily_routes=daily_routes,
        total_distance_km=feature.distance_km,
        total_duration_hours=feature.duration_s / 3600,
    )


def _ends_gap_m(feature: RouteFeature) -> float:
    return haversine_distance(feature.coordinates[0], feature.coordinates[-1])
