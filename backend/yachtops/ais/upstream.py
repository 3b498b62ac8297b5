"""Client for the upstream AIS REST API (vessel details and search).

Only used on the request path; never called while processing feed frames.
"""

import logging
from typing import Any, Optional

import httpx

from yachtops.ais.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

SOURCE = "ais-api"


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _float_or_zero(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def normalize_vessel_description(data: dict[str, Any], mmsi: Optional[str] = None) -> dict[str, Any]:
    """Map an upstream vessel description onto the detail shape.

    Every upstream field is optional.
    """
    raw_mmsi = _first(data, "MMSI", "mmsi", "UserID")
    name = _first(data, "NAME", "name", "ShipName", "shipName")
    return {
        "mmsi": str(raw_mmsi) if raw_mmsi is not None else (mmsi or ""),
        "name": str(name).strip() if name else "Unknown Vessel",
        "type": _first(data, "TYPE", "type", "ShipType", "shipType") or "Unknown",
        "length": _float_or_zero(_first(data, "LENGTH", "length")),
        "width": _float_or_zero(_first(data, "WIDTH", "width")),
        "flag": _first(data, "FLAG", "flag", "Country") or "Unknown",
        "imo": _first(data, "IMO", "imo"),
        "callSign": _first(data, "CALLSIGN", "CallSign", "callSign"),
    }


class UpstreamClient:
    """POST-based client keyed by an API key header."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """POST payload and return the response as a list of objects.

        Raises:
            UpstreamFetchError: On timeout, network error, non-2xx status or
                an unreadable body
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"ApiKey {self.api_key}",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamFetchError(f"Request to {path} timed out", source=SOURCE) from e
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(
                f"AIS API returned {e.response.status_code} for {path}",
                source=SOURCE,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"Request to {path} failed: {e}", source=SOURCE) from e
        except ValueError as e:
            raise UpstreamFetchError(f"Invalid JSON from {path}", source=SOURCE) from e

        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise UpstreamFetchError(f"Unexpected response from {path}", source=SOURCE)
        return [item for item in data if isinstance(item, dict)]

    async def fetch_vessel_details(self, mmsi: str) -> Optional[dict[str, Any]]:
        """Details for one station, None if upstream knows nothing about it."""
        items = await self._post("/vessels/details", {"mmsi": [mmsi]})
        if not items:
            return None
        return normalize_vessel_description(items[0], mmsi=mmsi)

    async def search_vessels(self, query: str) -> list[dict[str, Any]]:
        items = await self._post("/vessels/search", {"query": query})
        return [normalize_vessel_description(item) for item in items]
