"""Role registry and authorization checks for attendance operations."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from choirhub.errors import AuthorizationError


class MemberRole(str, Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


PRIVILEGED_ROLES: frozenset[MemberRole] = frozenset({MemberRole.MODERATOR, MemberRole.ADMIN})
ADMIN_ROLES: frozenset[MemberRole] = frozenset({MemberRole.ADMIN})


@dataclass(frozen=True)
class Caller:
    """Authenticated identity passed explicitly into every service call."""

    id: str
    role: MemberRole

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def authorize(caller: Caller, required_roles: Iterable[MemberRole]) -> None:
    roles = frozenset(required_roles)
    if caller.role not in roles:
        allowed = ", ".join(sorted(r.value for r in roles))
        raise AuthorizationError(f"This action requires one of the roles: {allowed}")


def authorize_member_access(caller: Caller, member_id: str) -> None:
    """Privileged callers may read any member; everyone else only themselves."""
    if caller.is_privileged:
        return
    if caller.id != member_id:
        raise AuthorizationError("You can only view your own attendance")
