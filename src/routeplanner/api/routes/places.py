"""Places proxy endpoints.

The mapping provider key stays on the server; failures are reported through
the provider's status vocabulary rather than HTTP errors.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, Request, status

from ...config import settings
from ...schemas.places import (
    AutocompleteRequest,
    AutocompleteResponse,
    PlaceDetailsRequest,
    PlaceDetailsResponse,
    ReverseGeocodeRequest,
    ReverseGeocodeResponse,
)
from ...services.places.geocoder import GeocodingClient
from ...services.places.search import place_details, reverse_geocode, search_places

router = APIRouter(prefix="/places", tags=["places"])

logger = logging.getLogger(__name__)


async def get_geocoder(request: Request):
    client = getattr(request.app.state, "http_client", None)
    if client is not None:
        yield GeocodingClient(client)
        return
    async with httpx.AsyncClient(timeout=settings.geocoding_timeout_seconds) as client:
        yield GeocodingClient(client)


@router.post("/autocomplete", response_model=AutocompleteResponse, status_code=status.HTTP_200_OK)
async def autocomplete(
    payload: AutocompleteRequest, geocoder: GeocodingClient = Depends(get_geocoder)
) -> AutocompleteResponse:
    try:
        return await search_places(payload.query, geocoder)
    except Exception as exc:
        logger.exception("Places autocomplete error: %s", exc)
        return AutocompleteResponse(status="UNKNOWN_ERROR", error_message="Internal server error")


@router.post(
    "/details",
    response_model=PlaceDetailsResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def details(
    payload: PlaceDetailsRequest, geocoder: GeocodingClient = Depends(get_geocoder)
) -> PlaceDetailsResponse:
    try:
        return await place_details(payload.place_id, geocoder)
    except Exception as exc:
        logger.exception("Places details error: %s", exc)
        return PlaceDetailsResponse(status="UNKNOWN_ERROR", error_message="Internal server error")


@router.post(
    "/reverse",
    response_model=ReverseGeocodeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def reverse(
    payload: ReverseGeocodeRequest, geocoder: GeocodingClient = Depends(get_geocoder)
) -> ReverseGeocodeResponse:
    try:
        return await reverse_geocode(payload.latitude, payload.longitude, geocoder)
    except Exception as exc:
        logger.exception("Reverse geocoding error: %s", exc)
        return ReverseGeocodeResponse(status="UNKNOWN_ERROR", error_message="Internal server error")
