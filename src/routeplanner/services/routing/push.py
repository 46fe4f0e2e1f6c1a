"""Socket.IO push channel for asynchronous route optimization updates.

Each subscription is scoped to one optimization request id. The set of ids of
interest is re-declared to the server on every (re)connect because the
transport's own retry logic does not preserve it.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import socketio

from ...config import settings

ROUTE_EVENTS = ("route_optimized", "route_optimization_failed", "route_update_requested")
SUBSCRIBE_EVENT = "subscribe_route_updates"
UNSUBSCRIBE_EVENT = "unsubscribe_route_updates"

RouteUpdateHandler = Callable[[str, dict], Union[None, Awaitable[None]]]

logger = logging.getLogger(__name__)


class RouteSubscription:
    """Interest in the updates of a single optimization request."""

    def __init__(self, channel: "RouteUpdateChannel", request_id: str) -> None:
        self.channel = channel
        self.request_id = request_id
        self.active = True

    async def release(self) -> None:
        if not self.active:
            return
        self.active = False
        await self.channel._release(self)

    async def __aenter__(self) -> "RouteSubscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.release()


class RouteUpdateChannel:
    def __init__(
        self,
        url: str | None = None,
        namespace: str | None = None,
        client: Optional[socketio.AsyncClient] = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.url = url or settings.push_url
        self.namespace = namespace or settings.push_namespace
        self.headers = headers or {}
        self.client = client if client is not None else socketio.AsyncClient(reconnection=True)
        self._subscriptions: dict[str, tuple[RouteSubscription, RouteUpdateHandler]] = {}
        self.connected = False
        self.last_error: Optional[str] = None

        self.client.on("connect", self._on_connect, namespace=self.namespace)
        self.client.on("disconnect", self._on_disconnect, namespace=self.namespace)
        self.client.on("connect_error", self._on_connect_error, namespace=self.namespace)
        for event in ROUTE_EVENTS:
            self.client.on(event, self._make_dispatcher(event), namespace=self.namespace)

    @property
    def request_ids(self) -> list[str]:
        return list(self._subscriptions)

    async def connect(self) -> None:
        await self.client.connect(
            self.url,
            headers=self.headers,
            namespaces=[self.namespace],
            transports=["websocket"],
        )

    async def disconnect(self) -> None:
        await self.client.disconnect()
        self.connected = False

    async def subscribe(self, request_id: str, handler: RouteUpdateHandler) -> RouteSubscription:
        existing = self._subscriptions.get(request_id)
        if existing is not None:
            existing[0].active = False
        subscription = RouteSubscription(self, request_id)
        self._subscriptions[request_id] = (subscription, handler)
        if self.connected:
            await self._emit(SUBSCRIBE_EVENT, request_id)
        logger.info("Subscribed to route updates for %s", request_id)
        return subscription

    async def _release(self, subscription: RouteSubscription) -> None:
        entry = self._subscriptions.get(subscription.request_id)
        if entry is None or entry[0] is not subscription:
            return
        del self._subscriptions[subscription.request_id]
        if self.connected:
            await self._emit(UNSUBSCRIBE_EVENT, subscription.request_id)
        logger.info("Unsubscribed from route updates for %s", subscription.request_id)

    async def _emit(self, event: str, request_id: str) -> None:
        await self.client.emit(event, {"requestId": request_id}, namespace=self.namespace)

    async def _on_connect(self) -> None:
        self.connected = True
        self.last_error = None
        logger.info("Connected to route optimization updates at %s%s", self.url, self.namespace)
        for request_id in list(self._subscriptions):
            await self._emit(SUBSCRIBE_EVENT, request_id)

    async def _on_disconnect(self, *args: Any) -> None:
        self.connected = False
        logger.info("Disconnected from route optimization updates")

    async def _on_connect_error(self, data: Any = None) -> None:
        self.last_error = str(data)
        logger.error("Route update channel connection error: %s", data)

    def _make_dispatcher(self, event: str) -> Callable[[Any], Awaitable[None]]:
        async def dispatch(data: Any = None) -> None:
            await self.deliver(event, data)

        return dispatch

    async def deliver(self, event: str, data: Any) -> bool:
        """Route an incoming event to its subscriber; unknown ids are ignored."""
        request_id = data.get("requestId") if isinstance(data, dict) else None
        entry = self._subscriptions.get(request_id) if request_id else None
        if entry is None or not entry[0].active:
            logger.debug("Ignoring %s for unsubscribed request %s", event, request_id)
            return False
        result = entry[1](event, data)
        if inspect.isawaitable(result):
            await result
        return True
