from typing import Any, Callable

import httpx
import pytest


class FakeSocketClient:
    """Records Socket.IO registrations and emissions; events are fired by hand."""

    def __init__(self) -> None:
        self.handlers: dict[tuple[str | None, str], Callable] = {}
        self.emitted: list[tuple[str, Any, str | None]] = []
        self.connect_calls: list[dict] = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[(namespace, event)] = handler

    async def connect(self, url, headers=None, namespaces=None, transports=None):
        self.connect_calls.append({"url": url, "namespaces": namespaces, "transports": transports})
        await self.handlers[(namespaces[0], "connect")]()

    async def disconnect(self):
        for (namespace, event), handler in list(self.handlers.items()):
            if event == "disconnect":
                await handler()

    async def emit(self, event, data=None, namespace=None):
        self.emitted.append((event, data, namespace))

    async def fire(self, event, data=None, namespace="/routes"):
        handler = self.handlers[(namespace, event)]
        if data is None:
            await handler()
        else:
            await handler(data)


@pytest.fixture
def socket_client() -> FakeSocketClient:
    return FakeSocketClient()


@pytest.fixture
def make_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
