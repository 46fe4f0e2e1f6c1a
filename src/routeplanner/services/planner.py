"""Wires the client-side components of one route-planning session."""

from __future__ import annotations

import asyncio
import logging

import httpx
from socketio.exceptions import ConnectionError as SocketConnectionError

from ..config import settings
from ..errors import OptimizationFailedError, RouteValidationError
from ..models.domain import OptimizationResult, SessionState
from .auth.credentials import CredentialStore
from .gateway import AuthenticatedGateway
from .outputs.route_formatter import result_summary, result_to_csv, result_to_json
from .places.client import PlacesClient
from .places.resolver import PlaceResolver
from .routing.push import RouteUpdateChannel
from .routing.session import UNKNOWN_FAILURE, OptimizationSession
from .routing.stops import StopCollection
from .vehicles import VehiclesClient

TIMED_OUT = "Route optimization timed out"

logger = logging.getLogger(__name__)


class RoutePlanner:
    """One browser-tab equivalent: credentials, stops, search and optimization.

    All components share a single ``httpx.AsyncClient`` so the session cookies
    set by the authentication service accompany every backend call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        channel: RouteUpdateChannel | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
        self.credentials = CredentialStore(self.client)
        self.gateway = AuthenticatedGateway(self.client, self.credentials)
        self.vehicles = VehiclesClient(self.gateway)
        self.stops = StopCollection()
        self.places = PlaceResolver(PlacesClient(self.client), self.stops)
        self.channel = channel
        self.session = OptimizationSession(self.gateway, self.stops, channel=channel)

    async def connect_updates(self) -> None:
        """Open the push channel; optimization still works without it."""
        if self.channel is None:
            self.channel = RouteUpdateChannel()
            self.session.channel = self.channel
        try:
            await self.channel.connect()
        except SocketConnectionError as exc:
            logger.error("Route update channel unavailable: %s", exc)

    async def _settle(self) -> SessionState:
        # Polls whenever the push channel is down; a pushed update ends the wait early.
        while not self.session.state.terminal:
            if self.channel is None or not self.channel.connected:
                await self.session.poll()
                if self.session.state.terminal:
                    break
            try:
                await asyncio.wait_for(self.session.wait(), self.poll_interval)
            except asyncio.TimeoutError:
                continue
        return self.session.state

    async def optimize(self, timeout: float | None = None) -> OptimizationResult:
        """Submit the current stops and wait for the terminal state.

        Without a connected push channel the status endpoint is polled every
        ``poll_interval`` seconds. When ``timeout`` expires the request is
        abandoned and the session ends FAILED.
        """
        state = await self.session.submit()
        if state == SessionState.OPTIMIZING:
            try:
                state = await asyncio.wait_for(self._settle(), timeout)
            except asyncio.TimeoutError:
                await self.session.abandon(TIMED_OUT)
                state = self.session.state
        if state != SessionState.SUCCEEDED or self.session.result is None:
            raise OptimizationFailedError(self.session.error or UNKNOWN_FAILURE, self.session.request_id)
        return self.session.result

    def export_result(self, fmt: str = "json"):
        result = self.session.result
        if result is None:
            raise RouteValidationError("No optimized route to export")
        if fmt == "csv":
            return result_to_csv(result)
        if fmt == "summary":
            return result_summary(result)
        return result_to_json(result)

    async def close(self) -> None:
        await self.session.close()
        await self.places.close()
        if self.channel is not None and self.channel.connected:
            await self.channel.disconnect()
        await self.credentials.close()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "RoutePlanner":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
