"""Route optimization service request/response schemas."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.domain import OptimizeFor


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StopPayload(_CamelModel):
    id: str
    latitude: float
    longitude: float
    address: str
    priority: Optional[int] = None


class PreferencesPayload(_CamelModel):
    avoid_tolls: bool = False
    avoid_highways: bool = False
    optimize_for: OptimizeFor = OptimizeFor.TIME


class OptimizeRouteRequest(_CamelModel):
    vehicle_id: str
    stops: List[StopPayload] = Field(..., min_length=2)
    preferences: PreferencesPayload = Field(default_factory=PreferencesPayload)


class WaypointModel(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    latitude: float
    longitude: float
    address: str = ""
    estimated_arrival: Optional[str] = None


class OptimizedRouteModel(_CamelModel):
    total_distance: float
    total_duration: float
    waypoints: List[WaypointModel] = Field(default_factory=list)


class OptimizationMetricsModel(_CamelModel):
    time_saved: float = 0.0
    distance_saved: float = 0.0
    fuel_saved: float = 0.0


class OptimizeRouteResponse(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    request_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    optimized_route: Optional[OptimizedRouteModel] = None
    optimization_metrics: Optional[OptimizationMetricsModel] = None


class RouteUpdateEvent(_CamelModel):
    """Status update delivered over the push channel or returned by a poll."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    request_id: str
    status: Optional[str] = None  # PROCESSING | COMPLETED | FAILED
    timestamp: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
