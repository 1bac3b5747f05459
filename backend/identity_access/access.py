"""
Access gate for the admin area.

Decides, per request, which admin view a caller may open. The gate is
stateless: every navigation re-evaluates the current user, the optional
override and the role assignment config.

Security:
    The override (e.g. `?role=` on /admin) comes from an untrusted source. It
    skips role resolution but still has to name a known admin role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .domain import (
    COLLEGE_ADMIN,
    FOOD_ADMIN,
    HOSTEL_ADMIN,
    OTHER_ADMIN,
    SUPER_ADMIN,
    UserRecord,
    is_admin_role,
)
from .roles import RoleAssignmentConfig, resolve_role

LOGIN_PATH = "/admin/login"

VIEW_PATHS = {
    SUPER_ADMIN: "/admin/super",
    COLLEGE_ADMIN: "/admin/college",
    HOSTEL_ADMIN: "/admin/hostel",
    FOOD_ADMIN: "/admin/food",
    OTHER_ADMIN: "/admin/other",
}


@dataclass(frozen=True)
class LoginRedirect:
    path: str = LOGIN_PATH


@dataclass(frozen=True)
class AdminView:
    role: str

    @property
    def path(self) -> str:
        return VIEW_PATHS[self.role]


Destination = Union[LoginRedirect, AdminView]

LOGIN_REDIRECT = LoginRedirect()


def select_destination(
    user: Optional[UserRecord],
    override: Optional[str],
    config: RoleAssignmentConfig,
) -> Destination:
    """Pick the admin view for `user`, or a login redirect.

    An empty override counts as absent. Unknown roles, whether resolved or
    supplied, are never authorized for a view.
    """
    if user is None:
        return LOGIN_REDIRECT
    final_role = override if override else resolve_role(user, config)
    if not final_role:
        return LOGIN_REDIRECT
    if is_admin_role(final_role):
        return AdminView(final_role)
    return LOGIN_REDIRECT


__all__ = [
    "AdminView",
    "Destination",
    "LOGIN_PATH",
    "LOGIN_REDIRECT",
    "LoginRedirect",
    "VIEW_PATHS",
    "select_destination",
]
