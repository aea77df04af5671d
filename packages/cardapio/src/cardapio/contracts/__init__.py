"""Contracts - envelope, errors, enums and input payloads."""

from cardapio.contracts.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from cardapio.contracts.result import ActionResult
from cardapio.contracts.types import OrderStatus, PaymentMethod, ProductType, UserRole

__all__ = [
    "ActionResult",
    "ServiceError",
    "ValidationError",
    "ConflictError",
    "ForbiddenError",
    "UnauthorizedError",
    "NotFoundError",
    "InvalidCredentialsError",
    "StoreUnavailableError",
    "UserRole",
    "OrderStatus",
    "PaymentMethod",
    "ProductType",
]
