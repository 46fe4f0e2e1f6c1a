"""Vehicle inventory schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Vehicle(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    registration_number: Optional[str] = None
    type: Optional[str] = None
    fuel_type: Optional[str] = None
    capacity: Optional[int] = None
    status: Optional[str] = None


class VehicleFilter(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: Optional[str] = None
    status: Optional[str] = None
    fuel_type: Optional[str] = None
    make: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

    def to_params(self) -> dict[str, str]:
        """Query parameters for the set filters only."""
        params = self.model_dump(by_alias=True, exclude_none=True)
        return {key: str(value).lower() if isinstance(value, bool) else str(value) for key, value in params.items()}


class VehiclesResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    vehicles: List[Vehicle] = Field(default_factory=list)
    total: Optional[int] = None


class VehicleWrite(BaseModel):
    """Body for create and update calls; unset fields are omitted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    registration_number: Optional[str] = None
    type: Optional[str] = None
    fuel_type: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
