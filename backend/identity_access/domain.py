"""
Identity domain constants and the user record shape.

Why:
- Centralize the admin role vocabulary so the resolver, the access gate and the
  complaints scope rules cannot drift apart.
- Keep the user record read-only: it is owned by the identity provider and only
  inspected here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

SUPER_ADMIN = "super-admin"
COLLEGE_ADMIN = "college-admin"
HOSTEL_ADMIN = "hostel-admin"
FOOD_ADMIN = "food-admin"
OTHER_ADMIN = "other-admin"

# Ordered: list scans and view tables iterate in this order.
ADMIN_ROLES = (SUPER_ADMIN, COLLEGE_ADMIN, HOSTEL_ADMIN, FOOD_ADMIN, OTHER_ADMIN)

# Immutable membership set for quick checks.
ALLOWED_ROLES = frozenset(ADMIN_ROLES)

# Granted to allow-listed emails that carry no other role signal.
DEFAULT_ALLOWLIST_ROLE = COLLEGE_ADMIN


@dataclass(frozen=True)
class UserRecord:
    """User as returned by the identity provider.

    `preferences` stays untyped on purpose: providers hand it over as a dict,
    a JSON string, or not at all. Use `identity_access.preferences` to read it.
    """

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    preferences: Any = None
    role: Any = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email and "@" in self.email:
            local = self.email.split("@", 1)[0]
            if local:
                return local
        return "Anonymous"


def is_admin_role(value: object) -> bool:
    return isinstance(value, str) and value in ALLOWED_ROLES


__all__ = [
    "ADMIN_ROLES",
    "ALLOWED_ROLES",
    "COLLEGE_ADMIN",
    "DEFAULT_ALLOWLIST_ROLE",
    "FOOD_ADMIN",
    "HOSTEL_ADMIN",
    "OTHER_ADMIN",
    "SUPER_ADMIN",
    "UserRecord",
    "is_admin_role",
]
