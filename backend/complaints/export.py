"""CSV export of complaint lists (admin download)."""

from __future__ import annotations

import csv
import io
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from .domain import Complaint

EXPORT_COLUMNS = ("id", "description", "category", "status", "email", "student", "created_at")

_UNSAFE_FILENAME = re.compile(r"[^a-z0-9_-]+")


def export_csv(complaints: Iterable[Complaint]) -> str:
    """Render complaints as CSV.

    The header row is bare; every data field is quoted and embedded quotes are
    doubled.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buf.write(",".join(EXPORT_COLUMNS) + "\n")
    for c in complaints:
        writer.writerow(
            [
                c.id,
                c.description or c.message or "",
                c.category,
                c.status,
                c.email,
                c.name,
                c.created_at,
            ]
        )
    return buf.getvalue()


def export_filename(scope: Optional[str], *, now: Optional[datetime] = None) -> str:
    """Download name; the scope can come from a user preference, so only
    `[a-z0-9_-]` survives and anything else falls back to the generic name."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
    slug = _UNSAFE_FILENAME.sub("", (scope or "").lower())
    prefix = f"{slug}_complaints" if slug else "complaints_export"
    return f"{prefix}_{stamp}.csv"
