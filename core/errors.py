"""
core/errors.py -- Closed error taxonomy shared by every layer.

Stores, validators and services raise these; only the exception handlers in
api/main.py translate an ErrorKind into an HTTP status. Nothing below the API
layer knows about status codes beyond the mapping declared here.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UPSTREAM = "upstream"

    @property
    def status_code(self) -> int:
        return _STATUS[self]


_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UPSTREAM: 503,
}


class TokenFailure(str, Enum):
    """Reason codes carried by AuthError so clients can tell re-login from retry."""

    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"


class AppError(Exception):
    """Base class for every expected failure.

    message is the short, user-facing `error` string; details is an optional
    list of field-level messages (validation violations, conflict hints).
    """

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details) if details else []

    def to_payload(self) -> dict:
        payload: dict = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION


class ConflictError(AppError):
    """A uniqueness constraint was violated. field names the colliding column."""

    kind = ErrorKind.CONFLICT

    def __init__(self, field: str, message: str | None = None) -> None:
        label = FIELD_LABELS.get(field, field)
        super().__init__(
            message or f"{label} already registered",
            [f"A user with this {field} already exists"],
        )
        self.field = field

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["field"] = self.field
        return payload


class AuthError(AppError):
    kind = ErrorKind.AUTH

    def __init__(self, reason: TokenFailure, message: str | None = None) -> None:
        super().__init__(message or _AUTH_MESSAGES[reason])
        self.reason = reason

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["reason"] = self.reason.value
        return payload


class ForbiddenError(AppError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND


class UpstreamError(AppError):
    """The store or another dependency failed or timed out. Safe to retry."""

    kind = ErrorKind.UPSTREAM


FIELD_LABELS: dict[str, str] = {
    "email": "Email",
    "username": "Username",
    "phone": "Phone number",
    "ktu_id": "KTU ID",
}

_AUTH_MESSAGES: dict[TokenFailure, str] = {
    TokenFailure.MISSING: "Authentication required",
    TokenFailure.MALFORMED: "Invalid token format",
    TokenFailure.EXPIRED: "Token expired",
    TokenFailure.INVALID_SIGNATURE: "Invalid token",
}
