"""Pydantic request and response models for the trip planning backend."""

from typing import Literal

from pydantic import BaseModel, ConfigDict

TripType = Literal["hiking", "cycling"]


# ---------------------------------------------------------------------------
# Route planning models
# ---------------------------------------------------------------------------


class Waypoint(BaseModel):
    """A named point proposed by the waypoint model (not yet on a path)."""

    lat: float
    lng: float
    name: str = ""


class RouteFeature(BaseModel):
    """Geometry and measured totals from a single directions request."""

    model_config = ConfigDict(frozen=True)

    coordinates: list[list[float]]
    """Path as ``[lng, lat]`` pairs."""

    distance_m: float
    duration_s: float

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000


class LineString(BaseModel):
    """GeoJSON LineString geometry."""

    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]]


class RoutePoint(BaseModel):
    """A single vertex of the final route, tagged with its day."""

    lat: float
    lng: float
    day: int
    order: int


class DailyRoute(BaseModel):
    """One day's contiguous slice of the route."""

    day: int
    distance_km: float
    duration_hours: float
    points: list[RoutePoint]


class TripPlan(BaseModel):
    """The complete, shaped route returned for a planning request."""

    model_config = ConfigDict(frozen=True)

    geometry: LineString
    points: list[RoutePoint]
    daily_routes: list[DailyRoute]
    total_distance_km: float
    total_duration_hours: float


# ---------------------------------------------------------------------------
# HTTP models
# ---------------------------------------------------------------------------


class TripLocation(BaseModel):
    """The destination picked by the user."""

    name: str
    lat: float
    lng: float


class PlanTripRequest(BaseModel):
    """Request body for the /plan-trip endpoint."""

    location: TripLocation
    trip_type: TripType


class PlanTripResponse(BaseModel):
    """Response from the /plan-trip endpoint."""

    route: TripPlan
    center: list[float] | None = None
    """Mean ``[lat, lng]`` of the route geometry, for centring the map."""
