"""Tests for route_shaping.py.

Directions responses are scripted through ``FakeORS``; the geometry helpers
build paths whose measured length is exactly the length asked for.
"""

import math

import pytest

import route_shaping
from errors import ExternalServiceFailure, ShapingFailure
from fakes import FakeORS, feature_collection, meridian_line, out_and_back
from geo_math import EARTH_RADIUS_M, LOOP_CLOSE_METERS, haversine_distance
from route_rules import RouteRules
from route_shaping import prefix_within, read_feature, shape_route

_RULES = RouteRules(cycling_max_km_per_day=60, hiking_min_km=5, hiking_max_km=15)

# Ten snapped points 2 km apart heading north (18 km end to end).
_STEP_DEG = math.degrees(2000 / EARTH_RADIUS_M)
_SNAPPED = [[10.0, 45.0 + i * _STEP_DEG] for i in range(10)]


def _fc(total_km, *, loop=False, duration_s=None):
    coords = out_and_back(total_km) if loop else meridian_line(total_km)
    return feature_collection(coords, duration_s)


# ---------------------------------------------------------------------------
# read_feature
# ---------------------------------------------------------------------------


def test_read_feature_prefers_summary():
    data = feature_collection(meridian_line(10), duration_s=7200)
    data["features"][0]["properties"]["summary"]["distance"] = 12_345
    feature = read_feature(data)
    assert feature.distance_m == 12_345
    assert feature.duration_s == 7200


def test_read_feature_measures_geometry_without_summary():
    feature = read_feature(feature_collection(meridian_line(10)))
    assert feature.distance_km == pytest.approx(10, abs=0.001)
    assert feature.duration_s == 0


def test_read_feature_accepts_bare_feature_and_drops_elevation():
    data = {
        "type": "Feature",
        "geometry": {"coordinates": [[10.0, 45.0, 300.0], [10.0, 45.01, 310.0]]},
        "properties": {"summary": {"distance": 1112.0, "duration": 800.0}},
    }
    feature = read_feature(data)
    assert feature.coordinates == [[10.0, 45.0], [10.0, 45.01]]


@pytest.mark.parametrize(
    "data",
    [{"features": []}, {}, {"features": [{"geometry": {"coordinates": [[10, 45]]}}]}],
)
def test_read_feature_without_route_raises(data):
    with pytest.raises(ExternalServiceFailure, match="No route found"):
        read_feature(data)


def test_read_feature_drops_malformed_positions():
    coords = [[10.0, 45.0], None, ["x", 45.0], [10.0, float("nan")], [10.02, 45.0]]
    feature = read_feature(feature_collection(coords))
    assert feature.coordinates == [[10.0, 45.0], [10.02, 45.0]]


@pytest.mark.parametrize("distance", ["far", -5, True])
def test_read_feature_malformed_summary_raises(distance):
    data = feature_collection(meridian_line(10), duration_s=600)
    data["features"][0]["properties"]["summary"]["distance"] = distance
    with pytest.raises(ExternalServiceFailure, match="Malformed route summary"):
        read_feature(data)


@pytest.mark.parametrize(
    "data",
    [
        {"features": [{"geometry": None}]},
        {"features": [{"geometry": {"coordinates": "nope"}}]},
        {"features": "nope"},
    ],
)
def test_read_feature_malformed_body_raises_service_failure(data):
    with pytest.raises(ExternalServiceFailure):
        read_feature(data)


@pytest.mark.asyncio
async def test_malformed_directions_body_becomes_shaping_failure():
    body = feature_collection([[10.0, 45.0], None, [10.02, 45.0]])
    body["features"][0]["properties"]["summary"] = {"distance": "far"}
    ors = FakeORS(directions=[body])

    with pytest.raises(ShapingFailure):
        await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)


# ---------------------------------------------------------------------------
# Candidate helpers
# ---------------------------------------------------------------------------


def test_prefix_within_stops_at_first_point_past_budget():
    assert prefix_within(_SNAPPED, 8_250) == _SNAPPED[:6]


def test_prefix_within_keeps_at_least_two_points():
    assert prefix_within(_SNAPPED, 0) == _SNAPPED[:2]


def test_prefix_within_whole_path_when_budget_not_reached():
    assert prefix_within(_SNAPPED, 1_000_000) == _SNAPPED


def test_minimal_loop_picks_point_nearest_target_radius():
    loop = route_shaping.minimal_loop(_SNAPPED, 15_000 / (2 * math.pi))
    assert loop == [_SNAPPED[0], _SNAPPED[1], _SNAPPED[0]]


# ---------------------------------------------------------------------------
# Directions request
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unknown_parameter_retries_without_options():
    ors = FakeORS(
        directions=[
            ExternalServiceFailure("Unknown parameter 'options'.", status_code=400),
            _fc(10, loop=True),
        ]
    )
    plan = await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)

    assert len(ors.directions_calls) == 2
    assert "options" in ors.directions_calls[0]["body"]
    assert "options" not in ors.directions_calls[1]["body"]
    assert ors.directions_calls[1]["profile"] == "foot-hiking"
    assert plan.total_distance_km == pytest.approx(10, abs=0.01)


@pytest.mark.asyncio
async def test_other_directions_errors_become_shaping_failure():
    ors = FakeORS(directions=[ExternalServiceFailure("Internal error", status_code=500)])

    with pytest.raises(ShapingFailure) as info:
        await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)

    assert len(ors.directions_calls) == 1
    assert isinstance(info.value.__cause__, ExternalServiceFailure)


@pytest.mark.asyncio
async def test_unknown_parameter_with_other_status_is_not_retried():
    ors = FakeORS(directions=[ExternalServiceFailure("Unknown parameter 'options'", status_code=500)])

    with pytest.raises(ShapingFailure):
        await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)
    assert len(ors.directions_calls) == 1


@pytest.mark.asyncio
async def test_empty_directions_result_is_shaping_failure():
    ors = FakeORS(directions=[{"type": "FeatureCollection", "features": []}])

    with pytest.raises(ShapingFailure, match="No route found"):
        await shape_route(ors, _SNAPPED[:4], "cycling", _RULES)


# ---------------------------------------------------------------------------
# Hiking
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_hiking_closes_loop_before_first_request():
    ors = FakeORS(directions=[_fc(10, loop=True, duration_s=3 * 3600)])
    plan = await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)

    assert ors.routed_coordinates(0) == _SNAPPED[:4] + [_SNAPPED[0]]
    assert len(plan.daily_routes) == 1
    day = plan.daily_routes[0]
    assert day.day == 1
    assert day.distance_km == pytest.approx(plan.total_distance_km)
    assert day.duration_hours == pytest.approx(3.0)
    assert plan.total_duration_hours == pytest.approx(3.0)
    assert _RULES.hiking_min_km <= plan.total_distance_km <= _RULES.hiking_max_km
    coords = plan.geometry.coordinates
    assert haversine_distance(coords[0], coords[-1]) <= LOOP_CLOSE_METERS
    assert [p.order for p in plan.points] == list(range(len(coords)))
    assert day.points == plan.points


@pytest.mark.asyncio
async def test_hiking_decimation_then_prefix_fallback():
    ors = FakeORS(
        directions=[
            _fc(20, loop=True),
            _fc(18, loop=True),
            _fc(17, loop=True),
            _fc(12, loop=True),
        ]
    )
    plan = await shape_route(ors, _SNAPPED, "hiking", _RULES)

    assert len(ors.directions_calls) == 4
    s = _SNAPPED
    # Decimation works on the closed loop and keeps it closed.
    assert ors.routed_coordinates(1) == [s[0], s[2], s[4], s[6], s[8], s[0]]
    assert ors.routed_coordinates(2) == [s[0], s[3], s[6], s[9], s[0]]
    # 55% of the 15 km budget is 8.25 km: the prefix ends at the 10 km point.
    assert ors.routed_coordinates(3) == s[:6] + [s[0]]
    assert plan.total_distance_km == pytest.approx(12, abs=0.01)


@pytest.mark.asyncio
async def test_hiking_minimal_loop_is_last_resort():
    ors = FakeORS(directions=[_fc(20, loop=True) for _ in range(6)] + [_fc(9, loop=True)])
    plan = await shape_route(ors, _SNAPPED, "hiking", _RULES)

    assert len(ors.directions_calls) == 7
    assert ors.routed_coordinates(6) == [_SNAPPED[0], _SNAPPED[1], _SNAPPED[0]]
    assert plan.total_distance_km == pytest.approx(9, abs=0.01)


@pytest.mark.asyncio
async def test_hiking_fails_when_every_fallback_is_too_long():
    ors = FakeORS(directions=[_fc(20, loop=True) for _ in range(7)])

    with pytest.raises(ShapingFailure, match="out of range"):
        await shape_route(ors, _SNAPPED, "hiking", _RULES)
    assert len(ors.directions_calls) == 7


@pytest.mark.asyncio
async def test_hiking_too_short_fails_without_fallbacks():
    ors = FakeORS(directions=[_fc(3, loop=True)])

    with pytest.raises(ShapingFailure, match="out of range"):
        await shape_route(ors, _SNAPPED, "hiking", _RULES)
    assert len(ors.directions_calls) == 1


# ---------------------------------------------------------------------------
# Cycling
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cycling_within_cap_splits_into_two_days():
    ors = FakeORS(directions=[_fc(100, duration_s=6 * 3600)])
    plan = await shape_route(ors, _SNAPPED, "cycling", _RULES)

    assert ors.routed_coordinates(0) == _SNAPPED  # left open
    assert ors.directions_calls[0]["profile"] == "cycling-regular"
    day1, day2 = plan.daily_routes
    assert (day1.day, day2.day) == (1, 2)
    assert day1.distance_km == pytest.approx(50, abs=0.01)
    assert day1.distance_km + day2.distance_km == pytest.approx(plan.total_distance_km, abs=0.01)
    assert day1.duration_hours + day2.duration_hours == pytest.approx(6.0)
    assert day1.duration_hours == pytest.approx(3.0, abs=0.01)


@pytest.mark.asyncio
async def test_cycling_days_partition_points():
    ors = FakeORS(directions=[_fc(100)])
    plan = await shape_route(ors, _SNAPPED, "cycling", _RULES)

    day1, day2 = plan.daily_routes
    orders = [p.order for p in day1.points] + [p.order for p in day2.points]
    assert orders == [p.order for p in plan.points] == list(range(len(plan.points)))
    assert all(p.day == 1 for p in day1.points)
    assert all(p.day == 2 for p in day2.points)


@pytest.mark.asyncio
async def test_cycling_too_long_is_decimated_then_split():
    # 130 km raw, 118 km after keep_every=2.
    ors = FakeORS(directions=[_fc(130), _fc(118)])
    plan = await shape_route(ors, _SNAPPED, "cycling", _RULES)

    assert len(ors.directions_calls) == 2
    assert ors.routed_coordinates(1) == [_SNAPPED[i] for i in (0, 2, 4, 6, 8, 9)]
    day1, day2 = plan.daily_routes
    assert plan.total_distance_km == pytest.approx(118, abs=0.01)
    assert day1.distance_km <= 60 + 0.1
    assert day2.distance_km <= 60 + 0.1
    assert day1.distance_km + day2.distance_km == pytest.approx(118, abs=0.01)


@pytest.mark.asyncio
async def test_cycling_fails_when_decimation_cannot_shorten():
    ors = FakeORS(directions=[_fc(130), _fc(125), _fc(122)])

    with pytest.raises(ShapingFailure, match="too long"):
        await shape_route(ors, _SNAPPED, "cycling", _RULES)
    assert len(ors.directions_calls) == 3


@pytest.mark.asyncio
async def test_cycling_exactly_at_total_cap_splits_evenly():
    data = feature_collection(meridian_line(120), duration_s=8 * 3600)
    data["features"][0]["properties"]["summary"]["distance"] = 120_000
    ors = FakeORS(directions=[data])
    plan = await shape_route(ors, _SNAPPED, "cycling", _RULES)

    assert len(ors.directions_calls) == 1
    day1, day2 = plan.daily_routes
    assert day1.distance_km == pytest.approx(60, abs=0.01)
    assert day2.distance_km == pytest.approx(60, abs=0.01)


@pytest.mark.asyncio
async def test_cycling_fails_when_no_split_keeps_days_under_cap():
    # Only one interior vertex, 10 km in: day 2 would be 109 km.
    step = math.degrees(1000 / EARTH_RADIUS_M)
    coords = [[10.0, 45.0], [10.0, 45.0 + 10 * step], [10.0, 45.0 + 119 * step]]
    ors = FakeORS(directions=[feature_collection(coords)])

    with pytest.raises(ShapingFailure, match="day distance exceeded"):
        await shape_route(ors, _SNAPPED, "cycling", _RULES)


@pytest.mark.asyncio
async def test_cycling_rejects_geometry_that_returns_to_start():
    ors = FakeORS(directions=[_fc(100, loop=True)])

    with pytest.raises(ShapingFailure, match="open route"):
        await shape_route(ors, _SNAPPED, "cycling", _RULES)


@pytest.mark.asyncio
async def test_hiking_rejects_geometry_that_does_not_close():
    ors = FakeORS(directions=[_fc(10)])

    with pytest.raises(ShapingFailure, match="not a loop"):
        await shape_route(ors, _SNAPPED[:4], "hiking", _RULES)
