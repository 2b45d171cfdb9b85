"""Pytest configuration for the trip planner backend test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on the path so tests can import
# modules directly (e.g. `import route_planning`) without a package prefix.
sys.path.insert(0, str(Path(__file__).parent.parent))

import route_planning  # noqa: E402
import waypoint_seeds  # noqa: E402


@pytest.fixture(autouse=True)
def no_retry_delays(monkeypatch):
    """Retry pauses are real seconds in production; tests skip them."""
    monkeypatch.setattr(waypoint_seeds, "SEED_RETRY_DELAY_S", 0)
    monkeypatch.setattr(route_planning, "INVALID_SEED_DELAY_S", 0)
    monkeypatch.setattr(route_planning, "ROUTE_FAILURE_DELAY_S", 0)
