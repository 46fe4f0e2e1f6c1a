"""Free-text place search, place details and reverse lookups.

Free-text search combines several geocoding variants of the query. A
failure of an individual variant is logged and ignored; the search only
reports zero results when no variant produced anything usable.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from ...config import settings
from ...errors import GeocodingError
from ...schemas.places import (
    AutocompleteResponse,
    Geometry,
    PlaceDetailsResponse,
    PlaceResult,
    Prediction,
    ReverseGeocodeResponse,
    StructuredFormatting,
)
from .geocoder import GeocodingClient

GEOCODED_PREFIX = "geocode_"

logger = logging.getLogger(__name__)


def query_variants(query: str, templates: Sequence[str] | None = None) -> list[str]:
    return [template.format(query=query) for template in (templates or settings.search_variants)]


def dedupe_by_address(results: Sequence[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    """Keep the first result per formatted address, in order, up to ``limit``."""
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for result in results:
        address = result.get("formatted_address")
        if not address or address in seen:
            continue
        seen.add(address)
        unique.append(result)
        if len(unique) >= limit:
            break
    return unique


def to_prediction(result: dict[str, Any], index: int, stamp: int) -> Prediction:
    address = result["formatted_address"]
    main_text, _, secondary = address.partition(",")
    geometry = None
    if result.get("geometry"):
        try:
            geometry = Geometry.model_validate(result["geometry"])
        except ValidationError:
            geometry = None
    return Prediction(
        place_id=f"{GEOCODED_PREFIX}{index}_{stamp}",
        description=address,
        structured_formatting=StructuredFormatting(
            main_text=main_text or address,
            secondary_text=secondary.strip(),
        ),
        geometry=geometry,
    )


async def _lookup_variant(geocoder: GeocodingClient, variant: str) -> list[dict[str, Any]]:
    try:
        return await geocoder.geocode(variant)
    except GeocodingError as exc:
        logger.warning("Failed to fetch results for query %r: %s", variant, exc)
        return []


async def search_places(
    query: str,
    geocoder: GeocodingClient,
    *,
    min_length: int | None = None,
    limit: int | None = None,
) -> AutocompleteResponse:
    min_length = min_length if min_length is not None else settings.min_query_length
    limit = limit if limit is not None else settings.max_search_results

    if not query or not query.strip() or len(query) < min_length:
        return AutocompleteResponse(
            status="INVALID_REQUEST",
            error_message=f"Query must be at least {min_length} characters long",
        )
    if not geocoder.configured:
        return AutocompleteResponse(status="REQUEST_DENIED", error_message="Google Maps API key not configured")

    batches = await asyncio.gather(*(_lookup_variant(geocoder, variant) for variant in query_variants(query)))
    combined = [result for batch in batches for result in batch]
    unique = dedupe_by_address(combined, limit)
    if not unique:
        return AutocompleteResponse(status="ZERO_RESULTS", predictions=[])

    stamp = int(time.time() * 1000)
    return AutocompleteResponse(
        status="OK",
        predictions=[to_prediction(result, index, stamp) for index, result in enumerate(unique)],
    )


async def place_details(place_id: str, geocoder: GeocodingClient) -> PlaceDetailsResponse:
    if not place_id:
        return PlaceDetailsResponse(status="INVALID_REQUEST", error_message="Place ID is required")
    if not geocoder.configured:
        return PlaceDetailsResponse(status="REQUEST_DENIED", error_message="Google Maps API key not configured")
    if place_id.startswith(GEOCODED_PREFIX):
        return PlaceDetailsResponse(
            status="NOT_FOUND",
            error_message="Place details not available for geocoded results",
        )

    try:
        response = await geocoder.place(place_id)
    except httpx.HTTPError as exc:
        logger.error("Place details request failed: %s", exc)
        return PlaceDetailsResponse(status="UNKNOWN_ERROR", error_message="Place details request failed")

    if not response.is_success:
        return PlaceDetailsResponse(
            status="REQUEST_DENIED",
            error_message=f"HTTP {response.status_code}: {response.reason_phrase}",
        )

    try:
        data = response.json()
    except ValueError:
        return PlaceDetailsResponse(status="UNKNOWN_ERROR", error_message="Unreadable place details response")

    location = data.get("location") or {}
    if data.get("formattedAddress") and "latitude" in location and "longitude" in location:
        return PlaceDetailsResponse(
            status="OK",
            result=PlaceResult(
                formatted_address=data["formattedAddress"],
                geometry=Geometry.model_validate(
                    {"location": {"lat": location["latitude"], "lng": location["longitude"]}}
                ),
            ),
        )
    return PlaceDetailsResponse(status="NOT_FOUND", error_message="Place not found")


async def reverse_geocode(latitude: float, longitude: float, geocoder: GeocodingClient) -> ReverseGeocodeResponse:
    if not geocoder.configured:
        return ReverseGeocodeResponse(status="REQUEST_DENIED", error_message="Google Maps API key not configured")
    try:
        results = await geocoder.reverse(latitude, longitude)
    except GeocodingError as exc:
        logger.warning("Reverse geocoding failed for %s,%s: %s", latitude, longitude, exc)
        return ReverseGeocodeResponse(status="UNKNOWN_ERROR", error_message=str(exc))

    usable = [result for result in results if result.get("formatted_address")]
    if not usable:
        return ReverseGeocodeResponse(status="ZERO_RESULTS")
    first = usable[0]
    return ReverseGeocodeResponse(
        status="OK",
        result=PlaceResult(
            formatted_address=first["formatted_address"],
            geometry=Geometry.model_validate(
                first.get("geometry") or {"location": {"lat": latitude, "lng": longitude}}
            ),
        ),
    )
