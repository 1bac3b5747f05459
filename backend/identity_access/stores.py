"""
In-memory session store.

Why: The browser only carries an opaque session id. The user record obtained
from the identity provider stays server-side and is restored per request.

For multi-process deployments, replace with a shared store (Redis/DB) that
implements the same `create/get/delete` methods.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import threading
import time

from .domain import UserRecord


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    user: UserRecord
    access_token: Optional[str] = None
    expires_at: Optional[int] = None


class SessionStore:
    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._data: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def create(self, *, user: UserRecord, access_token: Optional[str] = None, ttl_seconds: Optional[int] = None) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        rec = SessionRecord(session_id=sid, user=user, access_token=access_token, expires_at=_now() + ttl)
        with self._lock:
            self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            rec = self._data.get(session_id)
            if not rec:
                return None
            if rec.expires_at and rec.expires_at < _now():
                self._data.pop(session_id, None)
                return None
            return rec

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)
