"""Thin async client for the OpenRouteService snap and directions endpoints.

Every failure (HTTP error status, timeout, connection error, unreadable body)
surfaces as ``ExternalServiceFailure`` so callers handle one exception type.
"""

import logging
import os

import httpx

from errors import ExternalServiceFailure

logger = logging.getLogger(__name__)

ORS_BASE_URL: str = "https://api.openrouteservice.org"
SNAP_TIMEOUT_S: float = 20.0
DIRECTIONS_TIMEOUT_S: float = 30.0

# Routing profile per trip type.
PROFILES: dict[str, str] = {
    "hiking": "foot-hiking",
    "cycling": "cycling-regular",
}


def profile_for(trip_type: str) -> str:
    """Returns the OpenRouteService profile for a trip type."""
    return PROFILES.get(trip_type, PROFILES["hiking"])


def _error_message(response: httpx.Response) -> str:
    """Pulls ``error.message`` out of an ORS error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message", ""))
    if isinstance(error, str):
        return error
    return response.text[:200]


class OpenRouteServiceClient:
    """OpenRouteService snap + directions client.

    Args:
        api_key: ORS key; read from ``OPENROUTESERVICE_API_KEY`` if omitted.
        http_client: Optional shared ``httpx.AsyncClient``. Without one, a
            fresh client is opened per request.
        base_url: Override for self-hosted ORS deployments.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = ORS_BASE_URL,
    ) -> None:
        self._api_key = (
            api_key if api_key is not None
            else os.environ.get("OPENROUTESERVICE_API_KEY", "")
        )
        self._client = http_client
        self._base_url = base_url.rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json, application/geo+json",
        }

    async def snap(
        self, profile: str, locations: list[list[float]], radius: int
    ) -> dict:
        """Snaps ``[lng, lat]`` locations onto the network within ``radius`` m."""
        url = f"{self._base_url}/v2/snap/{profile}/json"
        return await self._post(
            url, {"locations": locations, "radius": radius}, SNAP_TIMEOUT_S
        )

    async def directions(self, profile: str, body: dict) -> dict:
        """Requests a GeoJSON route through ``body["coordinates"]``."""
        url = f"{self._base_url}/v2/directions/{profile}/geojson"
        return await self._post(url, body, DIRECTIONS_TIMEOUT_S)

    async def _post(self, url: str, body: dict, timeout: float) -> dict:
        try:
            if self._client is not None:
                response = await self._client.post(
                    url, json=body, headers=self._headers, timeout=timeout
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=body, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            raise ExternalServiceFailure(
                message or f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceFailure(
                f"{type(exc).__name__}: {exc}"
            ) from exc
        except ValueError as exc:
            raise ExternalServiceFailure(f"Unreadable response from {url}") from exc

        if not isinstance(data, dict):
            raise ExternalServiceFailure(f"Unexpected response shape from {url}")
        return data
