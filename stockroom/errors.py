# Overview: Service error taxonomy and its JSON rendering for API routes.

"""
Every error a service raises on purpose derives from ServiceError and
carries the HTTP status the boundary layer should answer with.

Routes catch ServiceError and call error_response(); anything else is
logged and collapsed to a generic 500 so no internal detail leaks.
"""

from __future__ import annotations

from flask import jsonify


class ServiceError(Exception):
    """Base class for expected, user-safe service failures."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    status_code = 400


class InsufficientStock(ServiceError):
    """Requested quantity exceeds quantity on hand."""
    status_code = 400

    def __init__(self, product_id: str, requested: int, available: int, name: str | None = None):
        label = name or product_id
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidCredentials(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Invalid username or password", details: dict | None = None):
        super().__init__(message, details)


class Unauthenticated(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, details)


class PermissionDenied(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""
    status_code = 409


class RateLimited(ServiceError):
    """Login cooldown in effect; retry_after_seconds says for how long."""
    status_code = 429

    def __init__(self, retry_after_seconds: int, message: str | None = None):
        super().__init__(
            message or "Too many failed login attempts. Try again later.",
            details={"locked": True, "retry_after_seconds": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds


def error_response(exc: ServiceError):
    body = {"error": str(exc)}
    body.update(exc.details)
    response = jsonify(body)
    response.status_code = exc.status_code
    if isinstance(exc, RateLimited):
        response.headers["Retry-After"] = str(exc.retry_after_seconds)
    return response
