from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Role
from .exceptions import AuthorizationError


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as handed over by the session layer."""

    user_id: int
    role: Role
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_privileged(self) -> bool:
        return self.role in {Role.ADMIN, Role.MANAGER}


def require_roles(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        raise AuthorizationError("You do not have permission for this action")


def require_self_or_privileged(actor: Actor, employee_id: int) -> None:
    """Employees may only act on their own records."""
    if actor.is_privileged:
        return
    if int(actor.user_id) != int(employee_id):
        raise AuthorizationError("Employees can only act on their own attendance")
