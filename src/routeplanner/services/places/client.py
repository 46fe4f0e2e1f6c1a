"""Client for the first-party places proxy endpoints."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ...config import settings
from ...errors import UpstreamError
from ...schemas.places import (
    AutocompleteRequest,
    AutocompleteResponse,
    PlaceDetailsRequest,
    PlaceDetailsResponse,
    ReverseGeocodeRequest,
    ReverseGeocodeResponse,
)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)

logger = logging.getLogger(__name__)


class PlacesClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str | None = None) -> None:
        self.client = client
        self.base_url = (base_url or settings.places_proxy_url).rstrip("/")

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = await self.client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Places request to {url} failed: {exc}") from exc
        if not response.is_success:
            logger.error("Places API request failed: %s", response.status_code)
            raise UpstreamError(f"Places API request failed: {response.status_code}", response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Unreadable places response from %s: %s", url, exc)
            raise UpstreamError(
                f"Places API returned an unreadable response from {url}", response.status_code
            ) from exc

    @staticmethod
    def _parse(model: type[ResponseModel], data: Any) -> ResponseModel:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.error("Unexpected places response: %s", exc)
            raise UpstreamError(f"Unexpected places response: {exc.error_count()} invalid field(s)") from exc

    async def autocomplete(self, query: str) -> AutocompleteResponse:
        data = await self._post("autocomplete", AutocompleteRequest(query=query).model_dump())
        return self._parse(AutocompleteResponse, data)

    async def details(self, place_id: str) -> PlaceDetailsResponse:
        data = await self._post("details", PlaceDetailsRequest(place_id=place_id).model_dump(by_alias=True))
        return self._parse(PlaceDetailsResponse, data)

    async def reverse(self, latitude: float, longitude: float) -> ReverseGeocodeResponse:
        data = await self._post(
            "reverse", ReverseGeocodeRequest(latitude=latitude, longitude=longitude).model_dump()
        )
        return self._parse(ReverseGeocodeResponse, data)
