"""Complaints service layer (Clean Architecture boundary).

Why:
    Encapsulates complaint use cases (submit/list/update status/annotate/
    delete/stats) so that web adapters remain framework-free and validation and
    scope rules can be unit-tested without FastAPI or a hosted database.

Errors:
    - ValueError("invalid_*") for rejected input
    - LookupError("complaint_not_found") for unknown ids
    - PermissionError("forbidden") for scope violations
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol
import logging
import re

from identity_access.domain import UserRecord

from .domain import (
    CATEGORIES,
    STATUSES,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_RESOLVED,
    Complaint,
    is_pending,
    normalize_status_key,
)

logger = logging.getLogger("complaintdesk.complaints")

MAX_TEXT_LENGTH = 5000
TIMELINE_DAYS = 7
NO_REMARKS = "No remarks provided"


class ComplaintsRepoProtocol(Protocol):
    def create_complaint(self, payload: Dict[str, Any]) -> Complaint:
        ...

    def list_complaints(self, *, student_id: Optional[str] = None) -> List[Complaint]:
        """Return complaints newest first, optionally for one student."""
        ...

    def get_complaint(self, complaint_id: str) -> Optional[Complaint]:
        ...

    def update_complaint(self, complaint_id: str, fields: Dict[str, Any]) -> Optional[Complaint]:
        ...

    def delete_complaint(self, complaint_id: str) -> bool:
        ...


class StatusNotifierProtocol(Protocol):
    def notify_status_change(self, complaint: Complaint, remarks: str) -> None:
        ...


class _SilentNotifier:
    def notify_status_change(self, complaint: Complaint, remarks: str) -> None:
        return None


def _normalize_category(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("invalid_category")
    wanted = value.strip().lower()
    for category in CATEGORIES:
        if category.lower() == wanted:
            return category
    raise ValueError("invalid_category")


def _normalize_text(value: object, code: str, *, required: bool) -> str:
    if value is None:
        if required:
            raise ValueError(code)
        return ""
    if not isinstance(value, str):
        raise ValueError(code)
    trimmed = value.strip()
    if required and not trimmed:
        raise ValueError(code)
    if len(trimmed) > MAX_TEXT_LENGTH:
        raise ValueError(code)
    return trimmed


def _normalize_status(value: object) -> str:
    if not isinstance(value, str):
        raise ValueError("invalid_status")
    key = normalize_status_key(value)
    for status in STATUSES:
        if normalize_status_key(status) == key:
            return status
    raise ValueError("invalid_status")


def _matches_status(complaint: Complaint, status: Optional[str]) -> bool:
    if not status or normalize_status_key(status) == "all":
        return True
    key = normalize_status_key(status)
    if key == normalize_status_key(STATUS_PENDING) and is_pending(complaint.status):
        return True
    return normalize_status_key(complaint.status) == key


def _matches_query(complaint: Complaint, q: Optional[str], *, admin: bool) -> bool:
    needle = (q or "").strip().lower()
    if not needle:
        return True
    haystack = [complaint.description, complaint.message, complaint.category]
    if admin:
        haystack += [complaint.name, complaint.email, complaint.id]
    return any(needle in (value or "").lower() for value in haystack)


def _in_scope(complaint: Complaint, scope: Optional[str]) -> bool:
    if scope is None:
        return True
    return (complaint.category or "").strip().lower() == scope.strip().lower()


# PostgREST trims trailing zeros from fractional seconds ("09:00:00.12345").
_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def _pad_fraction(match: "re.Match[str]") -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def _created_on(complaint: Complaint) -> Optional[date]:
    raw = (complaint.created_at or "").strip()
    if not raw:
        return None
    normalized = _FRACTION.sub(_pad_fraction, raw.replace("Z", "+00:00"), count=1)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def complaint_stats(complaints: Iterable[Complaint], *, today: Optional[date] = None) -> Dict[str, Any]:
    """Status and category breakdown plus a seven-day timeline."""
    items = list(complaints)
    today = today or datetime.now(timezone.utc).date()

    pending = sum(1 for c in items if is_pending(c.status))
    in_progress = sum(1 for c in items if c.status == STATUS_IN_PROGRESS)
    resolved = sum(1 for c in items if c.status == STATUS_RESOLVED)
    by_status = [
        {"name": name, "value": value}
        for name, value in ((STATUS_PENDING, pending), (STATUS_IN_PROGRESS, in_progress), (STATUS_RESOLVED, resolved))
        if value > 0
    ]
    categories = Counter((c.category or "Other") for c in items)
    by_category = [{"name": name, "value": value} for name, value in sorted(categories.items())]

    buckets: Dict[date, List[Complaint]] = {}
    for c in items:
        day = _created_on(c)
        if day is not None:
            buckets.setdefault(day, []).append(c)
    timeline = []
    for offset in range(TIMELINE_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_items = buckets.get(day, [])
        timeline.append(
            {
                "date": day.isoformat(),
                "total": len(day_items),
                "pending": sum(1 for c in day_items if is_pending(c.status)),
                "resolved": sum(1 for c in day_items if c.status == STATUS_RESOLVED),
            }
        )

    return {
        "total": len(items),
        "pending": pending,
        "in_progress": in_progress,
        "resolved": resolved,
        "by_status": by_status,
        "by_category": by_category,
        "timeline": timeline,
    }


@dataclass
class ComplaintsService:
    """Use cases for complaints (framework-independent)."""

    repo: ComplaintsRepoProtocol
    notifier: StatusNotifierProtocol = field(default_factory=_SilentNotifier)

    def submit(self, user: Optional[UserRecord], *, category: object, description: object, message: object = None) -> Complaint:
        if user is None:
            raise PermissionError("unauthenticated")
        payload = {
            "student_id": user.id,
            "name": user.display_name,
            "email": user.email or "",
            "category": _normalize_category(category),
            "description": _normalize_text(description, "invalid_description", required=True),
            "message": _normalize_text(message, "invalid_message", required=False),
            "status": STATUS_PENDING,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        complaint = self.repo.create_complaint(payload)
        logger.info("Complaint submitted: id=%s category=%s", complaint.id, complaint.category)
        return complaint

    def list_for_student(self, student_id: str, *, status: Optional[str] = None, q: Optional[str] = None) -> List[Complaint]:
        if not student_id:
            raise PermissionError("unauthenticated")
        items = self.repo.list_complaints(student_id=student_id)
        return [c for c in items if _matches_status(c, status) and _matches_query(c, q, admin=False)]

    def list_for_admin(self, scope: Optional[str], *, status: Optional[str] = None, q: Optional[str] = None) -> List[Complaint]:
        items = self.repo.list_complaints()
        return [
            c
            for c in items
            if _in_scope(c, scope) and _matches_status(c, status) and _matches_query(c, q, admin=True)
        ]

    def _get_in_scope(self, complaint_id: str, scope: Optional[str]) -> Complaint:
        complaint = self.repo.get_complaint(complaint_id)
        if complaint is None:
            raise LookupError("complaint_not_found")
        if not _in_scope(complaint, scope):
            raise PermissionError("forbidden")
        return complaint

    def update_status(self, scope: Optional[str], complaint_id: str, *, status: object, remarks: object = None) -> Complaint:
        new_status = _normalize_status(status)
        self._get_in_scope(complaint_id, scope)
        updated = self.repo.update_complaint(complaint_id, {"status": new_status})
        if updated is None:
            raise LookupError("complaint_not_found")
        note = remarks.strip() if isinstance(remarks, str) else ""
        try:
            self.notifier.notify_status_change(updated, note or NO_REMARKS)
        except Exception as exc:
            logger.warning("Status notification failed: %s", exc.__class__.__name__)
        logger.info("Complaint status updated: id=%s status=%s", complaint_id, new_status)
        return updated

    def annotate(self, scope: Optional[str], complaint_id: str, *, note: object) -> Complaint:
        text = _normalize_text(note, "invalid_note", required=True)
        self._get_in_scope(complaint_id, scope)
        updated = self.repo.update_complaint(complaint_id, {"admin_note": text})
        if updated is None:
            raise LookupError("complaint_not_found")
        return updated

    def delete(self, scope: Optional[str], complaint_id: str) -> None:
        self._get_in_scope(complaint_id, scope)
        if not self.repo.delete_complaint(complaint_id):
            raise LookupError("complaint_not_found")
        logger.info("Complaint deleted: id=%s", complaint_id)

    def stats(self, complaints: Iterable[Complaint], *, today: Optional[date] = None) -> Dict[str, Any]:
        return complaint_stats(complaints, today=today)
