"""Domain models for stops, preferences, identities and optimization results."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


def new_stop_id() -> str:
    return f"stop-{uuid.uuid4().hex[:12]}"


class OptimizeFor(str, Enum):
    TIME = "time"
    DISTANCE = "distance"
    FUEL = "fuel"


class SessionState(str, Enum):
    """Lifecycle of a single route-optimization request."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    OPTIMIZING = "optimizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in (SessionState.SUBMITTING, SessionState.OPTIMIZING)

    @property
    def terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


@dataclass(slots=True)
class Stop:
    """A waypoint selected by the user; ``label`` is derived from its position."""

    latitude: float
    longitude: float
    address: str = ""
    id: str = field(default_factory=new_stop_id)
    priority: Optional[int] = None
    label: str = ""
    estimated_arrival: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RoutePreferences:
    avoid_tolls: bool = False
    avoid_highways: bool = False
    optimize_for: OptimizeFor = OptimizeFor.TIME


@dataclass(slots=True, frozen=True)
class Identity:
    """The authenticated user as reported by the user service."""

    user_id: str
    email: str
    roles: tuple[str, ...] = ()
    is_authenticated: bool = True
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Waypoint:
    latitude: float
    longitude: float
    address: str
    estimated_arrival: Optional[str] = None


@dataclass(slots=True, frozen=True)
class OptimizedRoute:
    total_distance: float
    total_duration: float
    waypoints: tuple[Waypoint, ...]


@dataclass(slots=True, frozen=True)
class OptimizationMetrics:
    time_saved: float = 0.0
    distance_saved: float = 0.0
    fuel_saved: float = 0.0


@dataclass(slots=True, frozen=True)
class OptimizationResult:
    request_id: Optional[str]
    optimized_route: OptimizedRoute
    optimization_metrics: OptimizationMetrics
