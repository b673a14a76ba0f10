"""
Location stamps for attendance check-ins.

Coordinates are reverse geocoded through a Nominatim-compatible
endpoint; when that fails the stamp carries the coordinates alone.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from hr_mobile.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Coordinates:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


def format_location(coords: Coordinates, address: Optional[str] = None) -> str:
    """Format `"<lat>, <lon>"` with six decimals, plus `" - <address>"` when known."""
    stamp = f"{coords.latitude:.6f}, {coords.longitude:.6f}"
    if address:
        stamp += f" - {address}"
    return stamp


class ReverseGeocoder:
    """Async client for reverse geocoding."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                headers={
                    "User-Agent": self.settings.geocoder_user_agent,
                    "Accept": "application/json",
                },
                timeout=10.0,
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    @retry(
        retry=retry_if_exception_type(httpx.HTTPError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _lookup(self, coords: Coordinates) -> Optional[str]:
        client = await self._get_http_client()
        response = await client.get(
            self.settings.geocoder_url,
            params={
                "format": "jsonv2",
                "lat": f"{coords.latitude:.6f}",
                "lon": f"{coords.longitude:.6f}",
            },
        )
        response.raise_for_status()
        data = response.json()
        return data.get("display_name") if isinstance(data, dict) else None

    async def reverse(self, coords: Coordinates) -> Optional[str]:
        """
        Look up the address for a position.

        Returns:
            The display address, or None when the lookup failed
        """
        try:
            return await self._lookup(coords)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed for {coords}: {e}")
            return None

    async def location_stamp(self, coords: Optional[Coordinates]) -> Optional[str]:
        """Build the check-in location string; None when there is no position."""
        if coords is None:
            return None
        return format_location(coords, await self.reverse(coords))
