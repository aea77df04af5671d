"""
Service error taxonomy.

Raised inside services and converted to ActionResult envelopes at the public
operation boundary. Callers never see raw store exceptions.
"""

from typing import Any


class ServiceError(Exception):
    """Base error for Tenant Data Service operations."""

    code = "ERROR"
    default_message = "Operation failed"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}


class ValidationError(ServiceError):
    """Missing or malformed input."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class ConflictError(ServiceError):
    """Uniqueness violation (slug, cpf, email)."""

    code = "CONFLICT"
    default_message = "Resource already exists"


class ForbiddenError(ServiceError):
    """
    Ownership mismatch or insufficient role.

    For tenant-owned records this is also what a missing id produces, so the
    caller cannot tell the two apart.
    """

    code = "FORBIDDEN"
    default_message = "Access denied"


class UnauthorizedError(ServiceError):
    """No (or invalid) authenticated identity."""

    code = "UNAUTHORIZED"
    default_message = "Não autorizado"


class NotFoundError(ServiceError):
    """A resolvable entity is absent."""

    code = "NOT_FOUND"
    default_message = "Not found"


class InvalidCredentialsError(ServiceError):
    """Password does not match the stored hash."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class StoreUnavailableError(ServiceError):
    """The store (database or cache) failed for infrastructure reasons."""

    code = "STORE_UNAVAILABLE"
    default_message = "Store unavailable"
