"""
Role resolution for admin users.

Why:
    The admin login, the admin router and the complaint APIs all need the same
    answer to "which admin role does this user hold?". Keeping one resolver
    avoids the drift that comes with copy-pasted detectors.

Design:
    `resolve_role` is pure: it reads the user record and an immutable
    `RoleAssignmentConfig` and performs no I/O. Callers build the config once
    at startup (`load_role_assignment_config`) and inject it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .domain import ALLOWED_ROLES, DEFAULT_ALLOWLIST_ROLE, UserRecord
from .preferences import Listed, Scalar, role_signal

logger = logging.getLogger("complaintdesk.identity_access")


@dataclass(frozen=True)
class RoleAssignmentConfig:
    """Static email-based role assignments.

    - `admin_emails`: raw emails granted the default role; matched
      case-sensitively against the user's email.
    - `admin_email_roles`: lowercased email -> role identifier.
    """

    admin_emails: frozenset[str] = frozenset()
    admin_email_roles: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


def parse_admin_emails(raw: str | None) -> frozenset[str]:
    """Parse a comma-separated email list; blanks are ignored, case is kept."""
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in str(raw).split(",") if part.strip())


def parse_admin_email_roles(raw: str | None) -> Mapping[str, str]:
    """Parse `email:role` pairs separated by commas.

    Pairs missing either side are dropped. Emails are lowercased; roles are
    kept as written (unknown roles are rejected later by the access gate).
    """
    mapping: dict[str, str] = {}
    if not raw:
        return MappingProxyType(mapping)
    for pair in str(raw).split(","):
        pair = pair.strip()
        if not pair:
            continue
        parts = pair.split(":")
        email = parts[0].strip()
        role = parts[1].strip() if len(parts) > 1 else ""
        if not email or not role:
            logger.debug("Dropping malformed admin role pair")
            continue
        mapping[email.lower()] = role
    return MappingProxyType(mapping)


def load_role_assignment_config(
    admin_emails: str | None = None,
    admin_email_roles: str | None = None,
) -> RoleAssignmentConfig:
    """Build the config from raw values, defaulting to the environment.

    Reads ADMIN_EMAILS and ADMIN_EMAIL_ROLE_MAP when the arguments are None.
    """
    if admin_emails is None:
        admin_emails = os.getenv("ADMIN_EMAILS", "")
    if admin_email_roles is None:
        admin_email_roles = os.getenv("ADMIN_EMAIL_ROLE_MAP", "")
    cfg = RoleAssignmentConfig(
        admin_emails=parse_admin_emails(admin_emails),
        admin_email_roles=parse_admin_email_roles(admin_email_roles),
    )
    logger.info(
        "Role assignments loaded: %d allow-listed, %d mapped",
        len(cfg.admin_emails),
        len(cfg.admin_email_roles),
    )
    return cfg


def resolve_role(user: Optional[UserRecord], config: RoleAssignmentConfig) -> Optional[str]:
    """Derive the user's admin role, or None.

    Precedence (first match wins):
      1. preferences.role (returned verbatim)
      2. preferences.roles: first known role, else the first entry
      3. user.role when it is a string
      4. lowercased email in `admin_email_roles`
      5. exact email in `admin_emails` -> DEFAULT_ALLOWLIST_ROLE
    """
    if user is None:
        return None

    signal = role_signal(user.preferences)
    if isinstance(signal, Scalar):
        return signal.value
    if isinstance(signal, Listed):
        for candidate in signal.values:
            if candidate in ALLOWED_ROLES:
                return candidate
        # Unknown custom roles are kept; the access gate rejects them.
        return signal.values[0]

    if isinstance(user.role, str):
        return user.role

    if user.email:
        mapped = config.admin_email_roles.get(user.email.lower())
        if mapped:
            return mapped
        if user.email in config.admin_emails:
            return DEFAULT_ALLOWLIST_ROLE

    return None


__all__ = [
    "RoleAssignmentConfig",
    "load_role_assignment_config",
    "parse_admin_email_roles",
    "parse_admin_emails",
    "resolve_role",
]
