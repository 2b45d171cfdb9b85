"""Waypoint seed generation.

Claude proposes 8–15 named lat/lng waypoints for a location and trip type.
The response contract is strict JSON, but the parser still copes with chatter,
code fences and trailing commas. Known locations can bypass the model with a
hand-curated preset.
"""

import asyncio
import json
import logging
import os
import random
import re
import threading
from collections.abc import Callable

from anthropic import APIError, AsyncAnthropic

from route_rules import RouteRules
from waypoint_presets import find_preset_routes

logger = logging.getLogger(__name__)

# Claude model used for waypoint generation.
SEED_MODEL: str = "claude-sonnet-4-6"
SEED_MAX_TOKENS: int = 2000
SEED_TEMPERATURE: float = 0.1
SEED_REQUEST_TIMEOUT_S: float = 60.0

# How many waypoints the model is asked for.
MIN_SEED_WAYPOINTS: int = 8
MAX_SEED_WAYPOINTS: int = 15

# Model calls per seed before giving up, and the pause between them.
MAX_SEED_ATTEMPTS: int = 3
SEED_RETRY_DELAY_S: float = 1.0

_JSON_SYSTEM_PROMPT = (
    "You are a JSON-only response assistant. Always respond with valid JSON "
    "only, no explanations, no markdown."
)

_SEED_PROMPT = """\
You are a travel route planner. Generate waypoints for a {trip_type} route \
around {location}.

REQUIREMENTS (critical):
- Generate {min_waypoints}-{max_waypoints} waypoints (logical stops/turns)
- Each waypoint MUST be on accessible streets/paths (no water/lakes/rivers/buildings)
- Spread out logically across the area (NOT a straight line)
- Each consecutive waypoint must vary in lat/lng (no uniform increments)
- Return **JSON only** with the exact fields: \
{{"waypoints":[{{"lat":<num>,"lng":<num>,"name":"..."}}]}}
{trip_rules}
Example of GOOD waypoints (varied, realistic):
{{"waypoints":[{{"lat":41.3851,"lng":2.1734,"name":"Start - City Center"}},\
{{"lat":41.3942,"lng":2.1734,"name":"Viewpoint"}},\
{{"lat":41.3968,"lng":2.1656,"name":"Park Entrance"}}]}}
{retry_note}"""

_CYCLING_RULES = """
For CYCLING:
- A **2-day** city-to-city journey (start and end should be **different** areas/cities)
- **Not circular**
- Up to **{per_day:g} km per day** (max {total:g} km total)
"""

_HIKING_RULES = """
For HIKING:
- **1-day CIRCULAR** route (must end where it started)
- Total distance **{min_km:g}-{max_km:g} km**
"""

_RETRY_NOTE = """
!!! PREVIOUS ATTEMPT HAD ISSUES. FIX THEM NOW:
- Do NOT place points over water or off-network
- Ensure spread-out, realistic points
- For cycling: start and end different cities/areas; for hiking: circular
"""


def build_seed_prompt(
    location: str,
    trip_type: str,
    rules: RouteRules,
    *,
    is_retry: bool = False,
) -> str:
    """Builds the waypoint instruction for Claude.

    Retry prompts carry an extra note naming the defects that usually sink a
    seed: off-network points, too little spread, and the wrong topology.
    """
    if trip_type == "cycling":
        trip_rules = _CYCLING_RULES.format(
            per_day=rules.cycling_max_km_per_day,
            total=rules.cycling_max_total_km,
        )
    else:
        trip_rules = _HIKING_RULES.format(
            min_km=rules.hiking_min_km,
            max_km=rules.hiking_max_km,
        )
    return _SEED_PROMPT.format(
        trip_type=trip_type,
        location=location,
        min_waypoints=MIN_SEED_WAYPOINTS,
        max_waypoints=MAX_SEED_WAYPOINTS,
        trip_rules=trip_rules,
        retry_note=_RETRY_NOTE if is_retry else "",
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _loads_object(text: str) -> dict | None:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _parse_direct(text: str) -> dict | None:
    return _loads_object(text)


def _is_payload(parsed) -> bool:
    return isinstance(parsed, dict) and isinstance(parsed.get("waypoints"), list)


def _parse_embedded_object(text: str) -> dict | None:
    """Parses the first balanced {"waypoints": ...} object amid commentary."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            parsed = None
        if _is_payload(parsed):
            return parsed
        start = text.find("{", start + 1)
    return None


def _parse_repaired(text: str) -> dict | None:
    """Strips markdown fences and trailing commas, then parses."""
    fixed = re.sub(r"```(?:json)?\s*", "", text)
    fixed = re.sub(r",\s*([}\]])", r"\1", fixed)
    return _loads_object(fixed.strip())


# Tried in order; the first strategy that yields an object wins.
PARSE_STRATEGIES: tuple[Callable[[str], dict | None], ...] = (
    _parse_direct,
    _parse_embedded_object,
    _parse_repaired,
)


def parse_seed_response(text: str) -> dict | None:
    """Extracts the JSON object from a model response, or None."""
    text = text.strip()
    if not text:
        return None
    for strategy in PARSE_STRATEGIES:
        parsed = strategy(text)
        if parsed is not None:
            return parsed
    return None


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class WaypointSeedGenerator:
    """Produces candidate waypoint seeds for one location and trip type.

    Owns the "last preset chosen" marker so a location with presets never gets
    the same preset twice in a row. One instance can be shared by concurrent
    requests; the marker is guarded by a lock.
    """

    def __init__(
        self,
        claude_client: AsyncAnthropic | None = None,
        *,
        rules: RouteRules | None = None,
        rng: random.Random | None = None,
    ):
        self._claude = claude_client
        self._rules = rules or RouteRules()
        self._rng = rng or random.Random()
        self._preset_lock = threading.Lock()
        self._last_preset: tuple[str, int] | None = None

    @property
    def claude(self) -> AsyncAnthropic:
        if self._claude is None:
            self._claude = AsyncAnthropic(
                api_key=os.environ.get("ANTHROPIC_API_KEY", "")
            )
        return self._claude

    async def generate(
        self,
        location: str,
        trip_type: str,
        *,
        is_retry: bool = False,
    ) -> dict | None:
        """Returns a ``{"waypoints": [...]}`` payload, or None on failure.

        Args:
            location: Free-text place name, e.g. "Queenstown, New Zealand".
            trip_type: ``"hiking"`` or ``"cycling"``.
            is_retry: True for second and later seeds in one planning request;
                adds a corrective note to the prompt.
        """
        preset = self.choose_preset(location, trip_type)
        if preset is not None:
            logger.info("Using preset waypoints for %r (%s)", location, trip_type)
            return {"waypoints": preset}

        prompt = build_seed_prompt(location, trip_type, self._rules, is_retry=is_retry)

        for attempt in range(1, MAX_SEED_ATTEMPTS + 1):
            try:
                raw = await self._request(prompt)
            except APIError as exc:
                logger.warning("Waypoint model call %d failed: %s", attempt, exc)
                raw = ""

            payload = parse_seed_response(raw) if raw else None
            if _is_payload(payload):
                count = len(payload["waypoints"])
                if MIN_SEED_WAYPOINTS <= count <= MAX_SEED_WAYPOINTS:
                    logger.info(
                        "Waypoint model returned %d waypoints on call %d",
                        count,
                        attempt,
                    )
                    return payload
                logger.warning(
                    "Waypoint model returned %d waypoints (want %d-%d) on call %d",
                    count, MIN_SEED_WAYPOINTS, MAX_SEED_WAYPOINTS, attempt,
                )
            elif raw:
                logger.warning("Unparseable waypoint response: %s", raw[:200])
            else:
                logger.warning("Empty waypoint response on call %d", attempt)
            if attempt < MAX_SEED_ATTEMPTS:
                await asyncio.sleep(SEED_RETRY_DELAY_S)

        return None

    async def _request(self, prompt: str) -> str:
        response = await self.claude.messages.create(
            model=SEED_MODEL,
            max_tokens=SEED_MAX_TOKENS,
            temperature=SEED_TEMPERATURE,
            system=_JSON_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            timeout=SEED_REQUEST_TIMEOUT_S,
        )
        if not response.content:
            return ""
        return (response.content[0].text or "").strip()

    def choose_preset(self, location: str, trip_type: str) -> list[dict] | None:
        """Picks a preset route at random, never the one picked last time."""
        found = find_preset_routes(location, trip_type)
        if not found:
            return None

        key, routes = found
        with self._preset_lock:
            last = self._last_preset[1] if (
                self._last_preset and self._last_preset[0] == key
            ) else None
            choices = [i for i in range(len(routes)) if i != last] or [0]
            idx = self._rng.choice(choices)
            self._last_preset = (key, idx)
        return [dict(wp) for wp in routes[idx]]
