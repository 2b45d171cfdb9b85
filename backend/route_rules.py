"""Product distance limits for hiking and cycling trips.

The three limits can be overridden through environment variables of the same
name. Algorithm-level constants (snap radii, retry counts, delays) live at the
top of the module that uses them.
"""

import logging
import os

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    """Reads a float from the environment, falling back to ``default``."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


# Cycling trips are two days, point-to-point, capped per day.
CYCLING_MAX_KM_PER_DAY: float = _env_float("CYCLING_MAX_KM_PER_DAY", 60.0)
# Hiking trips are single-day loops inside this band.
HIKING_MIN_KM: float = _env_float("HIKING_MIN_KM", 5.0)
HIKING_MAX_KM: float = _env_float("HIKING_MAX_KM", 15.0)

TRIP_TYPES: frozenset = frozenset({"hiking", "cycling"})


class RouteRules(BaseModel):
    """Distance limits applied while generating and shaping a trip."""

    cycling_max_km_per_day: float = CYCLING_MAX_KM_PER_DAY
    hiking_min_km: float = HIKING_MIN_KM
    hiking_max_km: float = HIKING_MAX_KM

    @property
    def cycling_max_total_km(self) -> float:
        return self.cycling_max_km_per_day * 2
