"""
Result envelope returned by every mutating operation.

Shape: {success, data?, error?, code?}
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cardapio.contracts.errors import ServiceError

T = TypeVar("T")


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """
    Success/error envelope.

    Attributes:
        success: Whether the operation completed
        data: Operation output on success
        error: Human-readable error message on failure
        code: Machine-readable error code on failure (ServiceError.code)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "ActionResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ServiceError) -> "ActionResult[T]":
        return cls(success=False, error=error.message, code=error.code)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting absent optional keys."""
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        if self.code is not None:
            result["code"] = self.code
        return result
