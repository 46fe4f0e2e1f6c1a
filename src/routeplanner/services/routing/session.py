"""Route-optimization session state machine.

Tracks one optimization request at a time: ``idle -> submitting ->
optimizing -> succeeded | failed``. Synchronous backends go straight from
``submitting`` to a terminal state. A terminal state is left only by a new
:meth:`OptimizationSession.submit`, which re-checks the idle preconditions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ...config import settings
from ...errors import (
    AuthRequiredError,
    OptimizationInProgressError,
    RouteValidationError,
    UpstreamError,
)
from ...models.domain import (
    OptimizationMetrics,
    OptimizationResult,
    OptimizedRoute,
    RoutePreferences,
    SessionState,
    Stop,
    Waypoint,
    new_stop_id,
)
from ...schemas.routing import (
    OptimizeRouteRequest,
    OptimizeRouteResponse,
    PreferencesPayload,
    RouteUpdateEvent,
)
from ..gateway import AuthenticatedGateway
from .push import RouteSubscription, RouteUpdateChannel
from .stops import StopCollection

VALIDATION_MESSAGE = "Please select a vehicle and add at least 2 stops"
UNKNOWN_FAILURE = "Unknown error occurred"

logger = logging.getLogger(__name__)


def result_from_response(payload: OptimizeRouteResponse) -> OptimizationResult:
    if payload.optimized_route is None:
        raise ValueError("Optimization response has no optimized route.")
    route = payload.optimized_route
    metrics = payload.optimization_metrics
    return OptimizationResult(
        request_id=payload.request_id,
        optimized_route=OptimizedRoute(
            total_distance=route.total_distance,
            total_duration=route.total_duration,
            waypoints=tuple(
                Waypoint(
                    latitude=waypoint.latitude,
                    longitude=waypoint.longitude,
                    address=waypoint.address,
                    estimated_arrival=waypoint.estimated_arrival,
                )
                for waypoint in route.waypoints
            ),
        ),
        optimization_metrics=OptimizationMetrics(
            time_saved=metrics.time_saved,
            distance_saved=metrics.distance_saved,
            fuel_saved=metrics.fuel_saved,
        )
        if metrics is not None
        else OptimizationMetrics(),
    )


def merge_waypoints(prior: list[Stop], waypoints: tuple[Waypoint, ...]) -> list[Stop]:
    """Turn optimized waypoints into stops.

    Waypoint ``i`` keeps the identity of prior stop ``i``; waypoints beyond
    the submitted count get fresh identities. Labels are positional.
    """
    merged: list[Stop] = []
    for index, waypoint in enumerate(waypoints):
        stop_id = prior[index].id if index < len(prior) else new_stop_id()
        merged.append(
            Stop(
                id=stop_id,
                latitude=waypoint.latitude,
                longitude=waypoint.longitude,
                address=waypoint.address,
                estimated_arrival=waypoint.estimated_arrival,
            )
        )
    return merged


class OptimizationSession:
    def __init__(
        self,
        gateway: AuthenticatedGateway,
        stops: StopCollection | None = None,
        channel: RouteUpdateChannel | None = None,
        endpoint: str | None = None,
    ) -> None:
        self.gateway = gateway
        self.stops = stops if stops is not None else StopCollection()
        self.channel = channel
        self.endpoint = endpoint or settings.optimize_endpoint
        self.vehicle_id: Optional[str] = None
        self.preferences = RoutePreferences()
        self.state = SessionState.IDLE
        self.result: Optional[OptimizationResult] = None
        self.error: Optional[str] = None
        self.status_message = ""
        self.request_id: Optional[str] = None
        self._subscription: Optional[RouteSubscription] = None
        self._settled = asyncio.Event()

    @property
    def can_submit(self) -> bool:
        return (
            not self.state.in_flight
            and bool(self.vehicle_id)
            and len(self.stops) >= settings.min_stops_for_optimization
        )

    def select_vehicle(self, vehicle_id: str | None) -> None:
        self.vehicle_id = vehicle_id

    def set_preferences(self, preferences: RoutePreferences) -> None:
        self.preferences = preferences

    def build_request(self) -> OptimizeRouteRequest:
        return OptimizeRouteRequest(
            vehicle_id=self.vehicle_id,
            stops=self.stops.to_payload(),
            preferences=PreferencesPayload(
                avoid_tolls=self.preferences.avoid_tolls,
                avoid_highways=self.preferences.avoid_highways,
                optimize_for=self.preferences.optimize_for,
            ),
        )

    def _transition(self, state: SessionState, message: str | None = None) -> None:
        logger.debug("Optimization session %s -> %s", self.state.value, state.value)
        self.state = state
        if message is not None:
            self.status_message = message
        if state.terminal:
            self._settled.set()
        else:
            self._settled.clear()

    def _fail(self, message: str) -> None:
        self.error = message
        self._transition(SessionState.FAILED, "Route optimization failed")

    def _succeed(self, result: OptimizationResult) -> None:
        self.result = result
        self.stops.replace(merge_waypoints(self.stops.stops, result.optimized_route.waypoints))
        self._transition(SessionState.SUCCEEDED, "Route optimization completed!")

    async def submit(self) -> SessionState:
        if self.state.in_flight:
            raise OptimizationInProgressError("An optimization is already in progress.")
        if self.state.terminal:
            self._transition(SessionState.IDLE)

        if not self.vehicle_id or len(self.stops) < settings.min_stops_for_optimization:
            self.error = VALIDATION_MESSAGE
            raise RouteValidationError(VALIDATION_MESSAGE)

        await self._release_subscription()
        payload = self.build_request()
        self.error = None
        self.result = None
        self.request_id = None
        self._transition(SessionState.SUBMITTING, "Starting route optimization...")

        try:
            data = await self.gateway.post(self.endpoint, json=payload.model_dump(by_alias=True, mode="json"))
        except AuthRequiredError as exc:
            self._fail(str(exc))
            raise
        except UpstreamError as exc:
            self._fail(exc.message)
            return self.state

        try:
            response = OptimizeRouteResponse.model_validate(data)
        except ValidationError as exc:
            logger.error("Unreadable optimization response: %s", exc)
            self._fail("Unexpected response from optimization service")
            return self.state

        self.request_id = response.request_id
        if response.status == "FAILED":
            self._fail(response.error or UNKNOWN_FAILURE)
        elif response.optimized_route is not None:
            self._succeed(result_from_response(response))
        elif response.request_id:
            self._transition(SessionState.OPTIMIZING, "Optimizing route...")
        else:
            self._fail("Optimization service returned neither a route nor a request id")

        if self.request_id and self.channel is not None and self.state != SessionState.FAILED:
            self._subscription = await self.channel.subscribe(self.request_id, self.handle_event)
        return self.state

    def handle_event(self, event: str, data: Any) -> bool:
        """Apply a push or poll update; returns False when it was ignored."""
        try:
            update = RouteUpdateEvent.model_validate(data)
        except ValidationError:
            logger.warning("Ignoring malformed %s event: %s", event, data)
            return False
        if update.request_id != self.request_id:
            logger.debug("Ignoring %s for stale request %s", event, update.request_id)
            return False

        if event == "route_update_requested":
            self.status_message = "Route update requested"
            return True

        if self.state != SessionState.OPTIMIZING:
            logger.debug("Ignoring %s while %s", event, self.state.value)
            return False

        if event == "route_optimization_failed":
            self._fail(update.error or UNKNOWN_FAILURE)
            return True

        if event == "route_optimized":
            body = dict(update.data or {})
            body.setdefault("requestId", update.request_id)
            try:
                response = OptimizeRouteResponse.model_validate(body)
                result = result_from_response(response)
            except (ValidationError, ValueError) as exc:
                logger.error("Completion event without a usable route: %s", exc)
                self._fail("Optimization completed without a usable route")
                return True
            self._succeed(result)
            return True

        return False

    async def poll(self) -> SessionState:
        """Ask the service for the status of the in-flight request."""
        if self.state != SessionState.OPTIMIZING or not self.request_id:
            return self.state
        try:
            data = await self.gateway.get(f"{self.endpoint.rstrip('/')}/{self.request_id}")
        except AuthRequiredError as exc:
            self._fail(str(exc))
            raise
        except UpstreamError as exc:
            self._fail(exc.message)
            return self.state

        if not isinstance(data, dict):
            return self.state
        status = data.get("status")
        body = {"requestId": self.request_id, **data}
        if status == "FAILED":
            self.handle_event("route_optimization_failed", body)
        elif status == "COMPLETED" or data.get("optimizedRoute") is not None:
            self.handle_event("route_optimized", {**body, "data": data.get("data") or data})
        return self.state

    async def wait(self, timeout: float | None = None) -> SessionState:
        if self.state.terminal or self.state == SessionState.IDLE:
            return self.state
        await asyncio.wait_for(self._settled.wait(), timeout)
        return self.state

    async def abandon(self, message: str) -> None:
        """Give up on the in-flight request; the session becomes FAILED."""
        if self.state.in_flight:
            logger.warning("Abandoning optimization %s: %s", self.request_id, message)
            self._fail(message)
        await self._release_subscription()

    async def _release_subscription(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            await subscription.release()

    async def close(self) -> None:
        await self._release_subscription()
