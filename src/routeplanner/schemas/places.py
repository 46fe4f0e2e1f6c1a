"""Places proxy request/response schemas.

Status values mirror the mapping provider's vocabulary so callers never need
to branch on provider-specific codes.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PlacesStatus = Literal[
    "OK",
    "ZERO_RESULTS",
    "INVALID_REQUEST",
    "REQUEST_DENIED",
    "NOT_FOUND",
    "UNKNOWN_ERROR",
]


class LatLng(BaseModel):
    lat: float
    lng: float


class Geometry(BaseModel):
    model_config = ConfigDict(extra="allow")

    location: LatLng


class StructuredFormatting(BaseModel):
    main_text: str
    secondary_text: str = ""


class Prediction(BaseModel):
    place_id: str
    description: str
    structured_formatting: StructuredFormatting
    geometry: Optional[Geometry] = None


class AutocompleteRequest(BaseModel):
    query: str = ""


class AutocompleteResponse(BaseModel):
    status: PlacesStatus
    predictions: List[Prediction] = Field(default_factory=list)
    error_message: Optional[str] = None


class PlaceDetailsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    place_id: str = Field(default="", alias="placeId")


class PlaceResult(BaseModel):
    formatted_address: str
    geometry: Geometry


class PlaceDetailsResponse(BaseModel):
    status: PlacesStatus
    result: Optional[PlaceResult] = None
    error_message: Optional[str] = None


class ReverseGeocodeRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ReverseGeocodeResponse(BaseModel):
    status: PlacesStatus
    result: Optional[PlaceResult] = None
    error_message: Optional[str] = None
