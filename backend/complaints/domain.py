"""
Complaints domain: record shape, vocabularies and department scope rules.

Why:
    Keep category/status vocabularies and the role -> category mapping in one
    place so the service, repositories and web adapters agree.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from identity_access.domain import (
    COLLEGE_ADMIN,
    FOOD_ADMIN,
    HOSTEL_ADMIN,
    OTHER_ADMIN,
    SUPER_ADMIN,
    UserRecord,
)
from identity_access.preferences import preference_value

CATEGORIES = ("College", "Hostel", "Food", "Other")

STATUS_PENDING = "Pending"
STATUS_IN_PROGRESS = "In Progress"
STATUS_RESOLVED = "Resolved"
STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_RESOLVED)

# Older records use "Open" for complaints nobody has picked up yet.
LEGACY_OPEN = "Open"

DEFAULT_SCOPE_BY_ROLE: Dict[str, Optional[str]] = {
    SUPER_ADMIN: None,
    COLLEGE_ADMIN: "College",
    HOSTEL_ADMIN: "Hostel",
    FOOD_ADMIN: "Food",
    OTHER_ADMIN: "Other",
}

DEPARTMENT_BY_CATEGORY = {
    "College": "College Department",
    "Hostel": "Hostel Department",
    "Food": "Food Department",
    "Other": "Administration",
}


@dataclass
class Complaint:
    id: str
    student_id: str
    name: str
    email: str
    category: str
    description: str
    message: str = ""
    status: str = STATUS_PENDING
    admin_note: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Complaint":
        """Build from a stored row, tolerating legacy column names."""
        return cls(
            id=str(row.get("id") or row.get("$id") or ""),
            student_id=str(row.get("student_id") or ""),
            name=str(row.get("name") or row.get("student_name") or ""),
            email=str(row.get("email") or row.get("student_email") or ""),
            category=str(row.get("category") or ""),
            description=str(row.get("description") or ""),
            message=str(row.get("message") or ""),
            status=str(row.get("status") or STATUS_PENDING),
            admin_note=row.get("admin_note") or None,
            created_at=str(row.get("created_at") or row.get("$createdAt") or ""),
        )


def normalize_status_key(value: str) -> str:
    """Lowercase and drop whitespace: "In Progress" -> "inprogress"."""
    return "".join((value or "").split()).lower()


def is_pending(status: str) -> bool:
    return status in (STATUS_PENDING, LEGACY_OPEN) or not status


def scope_category_for(user: Optional[UserRecord], role: Optional[str]) -> Optional[str]:
    """Category a department admin manages; None means all categories.

    A `college` / `college_id` preference overrides the role default.
    Raises PermissionError for roles without a department.
    """
    if role not in DEFAULT_SCOPE_BY_ROLE:
        raise PermissionError("forbidden")
    if role == SUPER_ADMIN:
        return None
    override = preference_value(user.preferences, "college", "college_id") if user else None
    return override or DEFAULT_SCOPE_BY_ROLE[role]


__all__ = [
    "CATEGORIES",
    "Complaint",
    "DEFAULT_SCOPE_BY_ROLE",
    "DEPARTMENT_BY_CATEGORY",
    "LEGACY_OPEN",
    "STATUSES",
    "STATUS_IN_PROGRESS",
    "STATUS_PENDING",
    "STATUS_RESOLVED",
    "is_pending",
    "normalize_status_key",
    "scope_category_for",
]
