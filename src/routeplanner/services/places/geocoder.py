"""HTTP client for the mapping provider's geocoding and places APIs."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...errors import GeocodingError

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None = None,
        geocoding_url: str | None = None,
        places_url: str | None = None,
    ) -> None:
        self.client = client
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.geocoding_url = geocoding_url or settings.geocoding_base_url
        self.places_url = (places_url or settings.places_base_url).rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _geocode(self, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            response = await self.client.get(
                self.geocoding_url,
                params={**params, "key": self.api_key or ""},
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc

        status = data.get("status")
        if status == "OK":
            return list(data.get("results") or [])
        if status == "ZERO_RESULTS":
            return []
        raise GeocodingError(f"Geocoding returned {status}: {data.get('error_message', '')}".strip())

    async def geocode(self, address: str) -> list[dict[str, Any]]:
        """Forward lookup; returns the provider's raw result records."""
        return await self._geocode({"address": address})

    async def reverse(self, latitude: float, longitude: float) -> list[dict[str, Any]]:
        return await self._geocode({"latlng": f"{latitude},{longitude}"})

    async def place(self, place_id: str) -> httpx.Response:
        """Raw place lookup; status handling is left to the caller."""
        return await self.client.get(
            f"{self.places_url}/{place_id}",
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": self.api_key or "",
                "X-Goog-FieldMask": "formattedAddress,location",
            },
        )


async def check_health(geocoder: GeocodingClient) -> bool:
    """Probe the geocoding API with a known address."""
    if not geocoder.configured:
        return False
    try:
        await geocoder.geocode("Berlin, Germany")
        return True
    except GeocodingError as exc:
        logger.warning("Geocoding health check failed: %s", exc)
        return False
