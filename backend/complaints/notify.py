"""
Status-change notifications via an outbound webhook.

Why:
    Students are emailed when an admin changes the status of their complaint.
    Mail delivery is handled by an external automation that listens on a
    webhook; this module only builds and posts the payload.

Security:
    The payload contains the student's name and email. Do not log it.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import os

import requests

from .domain import DEPARTMENT_BY_CATEGORY, Complaint

logger = logging.getLogger("complaintdesk.complaints")


def build_status_payload(complaint: Complaint, remarks: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "complaintId": complaint.id,
        "userName": complaint.name,
        "userEmail": complaint.email,
        "title": complaint.description or complaint.message,
        "description": complaint.message or complaint.description,
        "category": complaint.category,
        "assignedTo": DEPARTMENT_BY_CATEGORY.get(complaint.category, "Administration"),
        "currentStatus": complaint.status,
        "currentProgress": "Status updated by admin",
        "lastUpdatedOn": stamp,
        "adminRemarks": remarks,
    }


class StatusWebhookNotifier:
    """Post status changes to STATUS_WEBHOOK_URL; skip when unset."""

    def __init__(self, url: Optional[str] = None, *, timeout: float = 10):
        self.url = (url if url is not None else os.getenv("STATUS_WEBHOOK_URL", "")).strip()
        self.timeout = timeout

    def notify_status_change(self, complaint: Complaint, remarks: str) -> None:
        if not self.url:
            logger.debug("Status webhook not configured; skipping notification")
            return
        if not complaint.email:
            logger.info("No student email on complaint %s; skipping notification", complaint.id)
            return
        try:
            r = requests.post(self.url, json=build_status_payload(complaint, remarks), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Status webhook failed: %s", exc.__class__.__name__)
            return
        if r.status_code >= 400:
            logger.warning("Status webhook rejected notification: HTTP %s", r.status_code)
