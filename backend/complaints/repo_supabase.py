"""
Supabase-backed complaints repository.

This adapter talks to the hosted PostgREST table API through a provided
Supabase client. It is duck-typed to avoid a hard dependency during testing:
the client is expected to expose `.table(name)` returning a query builder with
`select/insert/update/delete/eq/order/limit/execute` (supabase-py v2).

Security:
- Use a key whose row level policies allow the intended operations only.
- Filtering by `student_id` happens server-side so students never receive
  other students' rows.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging
import os

from .domain import Complaint

logger = logging.getLogger("complaintdesk.complaints")

_COLUMNS = "id,student_id,name,email,category,description,message,status,admin_note,created_at"
_WRITABLE = ("student_id", "name", "email", "category", "description", "message", "status", "admin_note", "created_at")


def _rows(res: Any) -> List[Dict[str, Any]]:
    """Extract row dicts from an APIResponse (or a plain dict in fakes)."""
    data = getattr(res, "data", None)
    if data is None and isinstance(res, dict):
        data = res.get("data")
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


class SupabaseComplaintsRepo:
    def __init__(self, client: Any, *, table: Optional[str] = None):
        self._client = client
        self._table_name = table or os.getenv("COMPLAINTS_TABLE", "complaints")

    def _table(self) -> Any:
        return self._client.table(self._table_name)

    def create_complaint(self, payload: Dict[str, Any]) -> Complaint:
        row = {k: payload[k] for k in _WRITABLE if k in payload}
        res = self._table().insert(row).execute()
        rows = _rows(res)
        if not rows:
            raise RuntimeError("complaint_insert_failed")
        return Complaint.from_row(rows[0])

    def list_complaints(self, *, student_id: Optional[str] = None) -> List[Complaint]:
        query = self._table().select(_COLUMNS)
        if student_id is not None:
            query = query.eq("student_id", student_id)
        res = query.order("created_at", desc=True).execute()
        return [Complaint.from_row(row) for row in _rows(res)]

    def get_complaint(self, complaint_id: str) -> Optional[Complaint]:
        res = self._table().select(_COLUMNS).eq("id", complaint_id).limit(1).execute()
        rows = _rows(res)
        return Complaint.from_row(rows[0]) if rows else None

    def update_complaint(self, complaint_id: str, fields: Dict[str, Any]) -> Optional[Complaint]:
        values = {k: v for k, v in fields.items() if k in ("status", "admin_note", "message")}
        if not values:
            return self.get_complaint(complaint_id)
        res = self._table().update(values).eq("id", complaint_id).execute()
        rows = _rows(res)
        return Complaint.from_row(rows[0]) if rows else None

    def delete_complaint(self, complaint_id: str) -> bool:
        res = self._table().delete().eq("id", complaint_id).execute()
        return bool(_rows(res))


def build_supabase_client() -> Any | None:
    """Create a Supabase client from SUPABASE_URL/SUPABASE_KEY, or None.

    Returns None when unconfigured or when the client cannot be created; the
    caller falls back to in-memory adapters.
    """
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_KEY") or "").strip()
    if not url or not key:
        return None
    try:
        # Lazy import keeps the optional dependency out of test paths.
        from supabase import create_client
    except ImportError as exc:
        logger.warning("Supabase client unavailable: %s", exc.__class__.__name__)
        return None
    try:
        return create_client(url, key)
    except Exception as exc:
        logger.warning("Supabase client creation failed: %s: %s", exc.__class__.__name__, str(exc))
        return None
