"""Authenticated request gateway for backend services."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import settings
from ..errors import AuthRequiredError, UpstreamError
from .auth.credentials import CredentialStore

logger = logging.getLogger(__name__)


def error_message_from_response(response: httpx.Response) -> str:
    """Prefer the server's structured ``message``, else the raw body."""
    text = response.text
    try:
        body = response.json()
    except ValueError:
        return text or f"HTTP error {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or "API request failed")
    return text or f"HTTP error {response.status_code}"


def decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    return response.text


class AuthenticatedGateway:
    """Sends requests with the session's credentials attached.

    A 401 answer triggers exactly one credential refresh followed by exactly
    one retry of the original request. A second 401, or a failed refresh,
    raises :class:`AuthRequiredError`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialStore,
        base_url: str | None = None,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.base_url = (base_url or settings.api_base_url).rstrip("/")

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _send(self, method: str, url: str, kwargs: dict[str, Any]) -> httpx.Response:
        headers = {**kwargs.pop("headers", {}), **self.credentials.auth_headers()}
        try:
            return await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("API error for %s %s: %s", method, url, exc)
            raise UpstreamError(f"Request to {url} failed: {exc}") from exc

    async def request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = self._url(endpoint)

        response = await self._send(method, url, dict(kwargs))
        if response.status_code == 401:
            logger.info("Authorization denied for %s %s, refreshing session", method, url)
            if not await self.credentials.refresh():
                self.credentials.expire()
                raise AuthRequiredError()
            response = await self._send(method, url, dict(kwargs))
            if response.status_code == 401:
                raise AuthRequiredError()

        if not response.is_success:
            message = error_message_from_response(response)
            logger.warning("API error for %s %s: %s (%s)", method, url, message, response.status_code)
            raise UpstreamError(message, status_code=response.status_code)

        return decode_body(response)

    async def get(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("POST", endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("PUT", endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)
