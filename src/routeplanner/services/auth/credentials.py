"""Session credential store backed by the authentication service.

The store owns the current identity and the refresh token (mirrored from the
``refresh_token`` cookie the service sets). While an identity is present a
background task refreshes the session periodically; a failed scheduled
refresh clears the identity so the user has to log in again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ...config import settings
from ...errors import AuthError
from ...models.domain import Identity
from ...schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserProfile,
)

REFRESH_COOKIE = "refresh_token"
SESSION_EXPIRED = "Session expired"

logger = logging.getLogger(__name__)


def identity_from_profile(profile: UserProfile) -> Identity:
    return Identity(
        user_id=profile.id,
        email=profile.email,
        roles=tuple(profile.roles),
        is_authenticated=True,
        username=profile.username,
        first_name=profile.first_name,
        last_name=profile.last_name,
    )


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return fallback


class CredentialStore:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str | None = None,
        refresh_interval: float | None = None,
    ) -> None:
        self.client = client
        self.base_url = (base_url or settings.user_service_url).rstrip("/")
        self.refresh_interval = (
            refresh_interval if refresh_interval is not None else settings.refresh_interval_seconds
        )
        self._identity: Optional[Identity] = None
        self._refresh_token: Optional[str] = None
        self._access_token: Optional[str] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self.session_error: Optional[str] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    def get_identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def has_refresh_token(self) -> bool:
        return bool(self._current_refresh_token())

    @property
    def refresh_scheduled(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def auth_headers(self) -> dict[str, str]:
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token}"}
        return {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _current_refresh_token(self) -> Optional[str]:
        if not self._refresh_token:
            self._refresh_token = self.client.cookies.get(REFRESH_COOKIE)
        return self._refresh_token

    def _remember_tokens(self, access_token: str | None, refresh_token: str | None) -> None:
        if access_token:
            self._access_token = access_token
        cookie_token = self.client.cookies.get(REFRESH_COOKIE)
        if refresh_token or cookie_token:
            self._refresh_token = refresh_token or cookie_token

    def _set_identity(self, identity: Identity) -> None:
        self._identity = identity
        self.session_error = None
        self._schedule_refresh()

    def _clear_identity(self, reason: str | None = None) -> None:
        self._identity = None
        self._access_token = None
        if reason:
            self.session_error = reason
        self._cancel_refresh()

    async def login(self, username: str, password: str) -> Identity:
        payload = LoginRequest(username=username, password=password)
        try:
            response = await self.client.post(self._url("/auth/login"), json=payload.model_dump(by_alias=True))
        except httpx.HTTPError as exc:
            logger.error("Login request failed: %s", exc)
            raise AuthError(f"Authentication service unreachable: {exc}") from exc

        if not response.is_success:
            raise AuthError(_error_message(response, "Authentication failed"))

        try:
            auth = AuthResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError("Authentication service returned an unreadable response") from exc
        self._remember_tokens(auth.access_token, auth.refresh_token)

        if auth.user is None:
            identity = await self.fetch_profile()
            if identity is None:
                raise AuthError("Authentication failed")
            return identity

        identity = identity_from_profile(auth.user)
        self._set_identity(identity)
        logger.info("Logged in as %s", identity.email)
        return identity

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> AuthResponse:
        payload = RegisterRequest(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        try:
            response = await self.client.post(
                self._url("/auth/register"),
                json=payload.model_dump(by_alias=True, mode="json", exclude_none=True),
            )
        except httpx.HTTPError as exc:
            logger.error("Registration request failed: %s", exc)
            raise AuthError(f"Authentication service unreachable: {exc}") from exc

        if not response.is_success:
            raise AuthError(_error_message(response, "Registration failed"))

        try:
            auth = AuthResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError("Authentication service returned an unreadable response") from exc
        self._remember_tokens(auth.access_token, auth.refresh_token)
        if auth.user is not None:
            self._set_identity(identity_from_profile(auth.user))
        return auth

    async def refresh(self) -> bool:
        """Exchange the refresh token for a new session.

        Returns False when no refresh token is known or the service rejects
        it; the in-memory token is dropped in that case. On success the
        identity is re-fetched from the profile endpoint.
        """
        token = self._current_refresh_token()
        if not token:
            return False

        try:
            response = await self.client.post(
                self._url("/auth/refresh"),
                json=RefreshRequest(refresh_token=token).model_dump(by_alias=True),
            )
        except httpx.HTTPError as exc:
            logger.warning("Token refresh failed: %s", exc)
            self._refresh_token = None
            return False

        if not response.is_success:
            logger.info("Refresh token rejected with status %s", response.status_code)
            self._refresh_token = None
            return False

        try:
            body = RefreshResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            body = RefreshResponse()
        self._remember_tokens(body.access_token, body.refresh_token)

        identity = await self._load_profile()
        if identity is not None:
            self._identity = identity
            if not self.refresh_scheduled:
                self._schedule_refresh()
        return True

    async def logout(self) -> None:
        try:
            await self.client.post(self._url("/auth/logout"))
        except httpx.HTTPError as exc:
            logger.warning("Logout request failed: %s", exc)
        finally:
            self._refresh_token = None
            self.client.cookies.delete(REFRESH_COOKIE)
            self._clear_identity()
            self.session_error = None

    def expire(self, reason: str = SESSION_EXPIRED) -> None:
        """Drop the session locally after the service refused to renew it."""
        logger.info("Clearing local session: %s", reason)
        self._refresh_token = None
        self.client.cookies.delete(REFRESH_COOKIE)
        self._clear_identity(reason)

    async def fetch_profile(self) -> Optional[Identity]:
        """Load the current user, refreshing once if the session has lapsed."""
        try:
            response = await self.client.get(self._url("/users/me"), headers=self.auth_headers())
        except httpx.HTTPError as exc:
            logger.error("Profile request failed: %s", exc)
            return None

        if response.status_code == 401:
            if await self.refresh() and self._identity is not None:
                return self._identity
            self._clear_identity()
            return None

        identity = self._parse_profile(response)
        if identity is not None:
            self._set_identity(identity)
        return identity

    async def _load_profile(self) -> Optional[Identity]:
        # Single attempt, never triggers another refresh.
        try:
            response = await self.client.get(self._url("/users/me"), headers=self.auth_headers())
        except httpx.HTTPError as exc:
            logger.warning("Profile reload after refresh failed: %s", exc)
            return None
        return self._parse_profile(response)

    def _parse_profile(self, response: httpx.Response) -> Optional[Identity]:
        if not response.is_success:
            return None
        try:
            return identity_from_profile(UserProfile.model_validate(response.json()))
        except (ValueError, ValidationError) as exc:
            logger.warning("Unreadable profile response: %s", exc)
            return None

    async def scheduled_refresh(self) -> bool:
        """One tick of the periodic refresh; clears the identity on failure."""
        try:
            refreshed = await self.refresh()
        except Exception as exc:
            logger.exception("Scheduled refresh raised: %s", exc)
            refreshed = False
        if not refreshed:
            logger.info("Scheduled refresh failed, clearing session")
            self._clear_identity(SESSION_EXPIRED)
        return refreshed

    async def _refresh_loop(self) -> None:
        while self._identity is not None:
            await asyncio.sleep(self.refresh_interval)
            if self._identity is None:
                break
            if not await self.scheduled_refresh():
                break

    def _schedule_refresh(self) -> None:
        self._cancel_refresh()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, periodic refresh not scheduled")
            return
        self._refresh_task = loop.create_task(self._refresh_loop())

    def _cancel_refresh(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    async def close(self) -> None:
        task = self._refresh_task
        self._cancel_refresh()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
