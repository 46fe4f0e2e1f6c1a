"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.places.geocoder import GeocodingClient, check_health
from .places import get_geocoder

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/geocoding", status_code=status.HTTP_200_OK)
async def health_geocoding(geocoder: GeocodingClient = Depends(get_geocoder)) -> dict:
    """Check that the mapping provider accepts our key."""
    if not geocoder.configured:
        return {
            "service": "geocoding",
            "healthy": False,
            "message": "Google Maps API key not configured. Set ROUTEPLANNER_GOOGLE_MAPS_API_KEY.",
        }
    return {"service": "geocoding", "healthy": await check_health(geocoder)}
