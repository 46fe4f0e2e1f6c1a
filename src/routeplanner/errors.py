"""Exception types raised by the route planner client."""

from __future__ import annotations


class RoutePlannerError(Exception):
    """Base class for all route planner errors."""


class AuthError(RoutePlannerError):
    """Login or registration was rejected by the authentication service."""


class AuthRequiredError(RoutePlannerError):
    """The request was denied and refreshing the session did not help."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class UpstreamError(RoutePlannerError):
    """A backend service failed or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RouteValidationError(RoutePlannerError):
    """A client-side precondition was not met; no request was issued."""


class OptimizationInProgressError(RoutePlannerError):
    """A submission was attempted while another optimization is in flight."""


class OptimizationFailedError(RoutePlannerError):
    """The optimization service reported a terminal failure for a request."""

    def __init__(self, message: str, request_id: str | None = None) -> None:
        super().__init__(message)
        self.request_id = request_id


class GeocodingError(RoutePlannerError):
    """A single geocoding lookup could not produce usable results."""
