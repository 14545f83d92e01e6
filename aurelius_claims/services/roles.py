"""Role resolution and landing-route dispatch."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog
from sqlalchemy.orm import Session

from aurelius_claims.core.errors import PermissionDeniedError, RoleConfigurationError
from aurelius_claims.models import UserRole

LOGGER = structlog.get_logger(__name__)

LOGIN_ROUTE = "/auth"
GENERIC_LANDING_ROUTE = "/"


class Role(str, enum.Enum):
    LECTURER = "lecturer"
    COORDINATOR = "coordinator"
    ACADEMIC_MANAGER = "academic_manager"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "Role":
        """Map a stored role name onto a member, falling back to ``UNKNOWN``."""

        normalized = (value or "").strip().lower()
        for member in cls:
            if member is not cls.UNKNOWN and member.value == normalized:
                return member
        return cls.UNKNOWN

    @property
    def is_approver(self) -> bool:
        return self in APPROVER_ROLES


APPROVER_ROLES: frozenset[Role] = frozenset({Role.COORDINATOR, Role.ACADEMIC_MANAGER})

_LANDING_ROUTES: dict[Role, str] = {
    Role.LECTURER: "/lecturer-dashboard",
    Role.COORDINATOR: "/approver-dashboard",
    Role.ACADEMIC_MANAGER: "/approver-dashboard",
}


@dataclass(frozen=True)
class Caller:
    """The authenticated identity an operation runs on behalf of."""

    user_id: str
    email: str
    full_name: str
    role: Role

    @property
    def is_approver(self) -> bool:
        return self.role.is_approver


@dataclass(frozen=True)
class Anonymous:
    redirect_to: str = LOGIN_ROUTE


@dataclass(frozen=True)
class Authenticated:
    caller: Caller
    landing: str


def landing_route(role: Role) -> str:
    """Return the route a freshly resolved session should be sent to.

    Unrecognised roles land on the generic landing page instead of a
    dashboard; every role-gated operation still refuses them.
    """

    return _LANDING_ROUTES.get(role, GENERIC_LANDING_ROUTE)


def resolve_role(session: Session, user_id: str) -> Role:
    """Look up the single role assigned to ``user_id``."""

    rows = (
        session.query(UserRole.role)
        .filter(UserRole.user_id == user_id)
        .order_by(UserRole.id.asc())
        .all()
    )
    if not rows:
        LOGGER.warning("role_missing", user_id=user_id)
        raise RoleConfigurationError("User role not assigned")
    if len(rows) > 1:
        LOGGER.warning("role_ambiguous", user_id=user_id, roles=[row.role for row in rows])
        raise RoleConfigurationError("Multiple roles assigned to user")

    role = Role.parse(rows[0].role)
    if role is Role.UNKNOWN:
        LOGGER.warning("role_unrecognized", user_id=user_id, role=rows[0].role)
    return role


def require_lecturer(caller: Caller) -> Caller:
    if caller.role is not Role.LECTURER:
        raise PermissionDeniedError("Only lecturers can perform this action")
    return caller


def require_approver(caller: Caller) -> Caller:
    if not caller.is_approver:
        raise PermissionDeniedError("Only coordinators or academic managers can review claims")
    return caller


__all__ = [
    "APPROVER_ROLES",
    "Anonymous",
    "Authenticated",
    "Caller",
    "GENERIC_LANDING_ROUTE",
    "LOGIN_ROUTE",
    "Role",
    "landing_route",
    "require_approver",
    "require_lecturer",
    "resolve_role",
]
