"""Caller identity and explicit authorization checks."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.core.exceptions import AuthorizationError
from app.models.user import User, UserRole


@dataclass(slots=True, frozen=True)
class Actor:
    """Caller-supplied identity and role for operator/RPC operations."""

    user_id: UUID
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def require_roles(actor: Actor, allowed: set[UserRole]) -> None:
    """Raise AuthorizationError if the actor is not a member of the allowed role set."""

    if actor.role not in allowed:
        raise AuthorizationError("Insufficient permissions")


def require_owner_or_admin(actor: Actor, owner_id: UUID | None) -> None:
    if actor.is_admin or (owner_id is not None and actor.user_id == owner_id):
        return
    raise AuthorizationError("Not authorized")


__all__ = ["Actor", "require_owner_or_admin", "require_roles"]
