"""In-memory complaints repository (development and tests)."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional
from uuid import uuid4
import threading

from .domain import Complaint


class InMemoryComplaintsRepo:
    def __init__(self) -> None:
        self.complaints: Dict[str, Complaint] = {}
        self._lock = threading.Lock()

    def create_complaint(self, payload: Dict[str, Any]) -> Complaint:
        complaint = Complaint.from_row({**payload, "id": str(uuid4())})
        with self._lock:
            self.complaints[complaint.id] = complaint
        return complaint

    def list_complaints(self, *, student_id: Optional[str] = None) -> List[Complaint]:
        with self._lock:
            items = list(self.complaints.values())
        if student_id is not None:
            items = [c for c in items if c.student_id == student_id]
        # ISO timestamps sort chronologically as strings.
        return sorted(items, key=lambda c: c.created_at, reverse=True)

    def get_complaint(self, complaint_id: str) -> Optional[Complaint]:
        return self.complaints.get(complaint_id)

    def update_complaint(self, complaint_id: str, fields: Dict[str, Any]) -> Optional[Complaint]:
        allowed = {k: v for k, v in fields.items() if k in ("status", "admin_note", "message")}
        with self._lock:
            current = self.complaints.get(complaint_id)
            if current is None:
                return None
            updated = replace(current, **allowed)
            self.complaints[complaint_id] = updated
        return updated

    def delete_complaint(self, complaint_id: str) -> bool:
        with self._lock:
            return self.complaints.pop(complaint_id, None) is not None
