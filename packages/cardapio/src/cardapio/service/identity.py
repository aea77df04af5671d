"""
Authenticated identity.

Session resolution happens at the boundary (web layer, CLI); services receive
the resulting Identity as an explicit parameter.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from cardapio.contracts.errors import ForbiddenError, UnauthorizedError
from cardapio.contracts.types import UserRole


@dataclass(frozen=True)
class Identity:
    """
    Claims of the authenticated caller.

    Only what the services need to authorize a call: who, which role and,
    for company owners, which tenant.
    """

    user_id: UUID
    role: UserRole
    company_id: UUID | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user_data(cls, user: dict[str, Any]) -> "Identity":
        """
        Build from a serialized user (as returned by authentication).

        Accepts the public "company" label as well as the stored role value.
        """
        role = user["role"]
        if role == UserRole.COMPANY_OWNER.public_label:
            role = UserRole.COMPANY_OWNER.value

        return cls(
            user_id=UUID(user["id"]),
            role=UserRole(role),
            company_id=UUID(user["company_id"]) if user.get("company_id") else None,
            email=user.get("email"),
        )


def require_identity(identity: Identity | None) -> Identity:
    """No session is an unconditional Unauthorized."""
    if identity is None:
        raise UnauthorizedError()
    return identity


def require_admin(identity: Identity | None) -> Identity:
    """Administrative operations need an admin identity."""
    identity = require_identity(identity)
    if not identity.is_admin:
        raise ForbiddenError("Administrator access required")
    return identity
