"""Trip planner backend service.

Exposes the route planning engine: a hiking loop or a two-day cycling route
generated around a named destination.
"""

import logging

from fastapi import FastAPI, HTTPException

import route_planning
from errors import ExhaustedAttemptsFailure
from geo_math import route_center
from models import PlanTripRequest, PlanTripResponse
from waypoint_seeds import WaypointSeedGenerator

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="Trip Planner Backend",
    description="AI-seeded hiking and cycling route generation.",
    version="0.1.0",
)

# Shared so preset destinations do not serve the same preset twice in a row.
seed_generator = WaypointSeedGenerator()


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint used to verify the service is live."""
    return {"status": "ok"}


@app.post("/plan-trip", response_model=PlanTripResponse)
async def plan_trip(request: PlanTripRequest) -> PlanTripResponse:
    """Plans a route around the requested destination.

    Runs the planning pipeline:
    1. Claude proposes waypoints (or a preset is used for known places).
    2. Waypoints are sanity-checked and rejected if nearly straight.
    3. OpenRouteService snaps them onto the trail/road network.
    4. OpenRouteService directions builds the route, which is shortened
       until it fits the hiking or cycling distance limits.
    Up to six fresh seeds are tried before giving up.

    Args:
        request: ``PlanTripRequest`` with the destination and trip type.

    Returns:
        ``PlanTripResponse`` with the route and a map centre.

    Raises:
        HTTPException 400: If the location name is empty.
        HTTPException 502: If no route could be planned.
    """
    name = request.location.name.strip()
    if not name:
        raise HTTPException(
            status_code=400,
            detail="location.name must not be empty.",
        )
    try:
        plan = await route_planning.plan_route(
            name,
            request.trip_type,
            seed_generator=seed_generator,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ExhaustedAttemptsFailure as exc:
        logging.warning("plan_route exhausted attempts for %r", name)
        raise HTTPException(
            status_code=502,
            detail="Failed to plan trip. Please try again.",
        ) from exc
    except Exception as exc:  # noqa: BLE001
        logging.exception("route_planning.plan_route failed")
        raise HTTPException(
            status_code=502,
            detail="Failed to plan trip. Please try again.",
        ) from exc

    center = route_center(plan.geometry.coordinates)
    return PlanTripResponse(
        route=plan,
        center=list(center) if center else None,
    )
