"""
Student complaint routes: submit a complaint and read one's own history.

Permissions:
    Any signed-in user. Listing is always restricted to the caller's own
    complaints (filtered server-side by student id).
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, field_validator

from .security import csrf_guard, error_from_exception, json_private, private_error

complaints_router = APIRouter(tags=["Complaints"])


class ComplaintCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=32)
    description: str = Field(..., min_length=1, max_length=5000)
    message: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("message")
    @classmethod
    def _strip_empty(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v if v else None
        return v


def _current_user(request: Request):
    user = getattr(request.state, "user", None)
    if user is None:
        return None, private_error({"error": "unauthenticated"}, status_code=401)
    return user, None


@complaints_router.get("/api/complaints")
async def list_my_complaints(request: Request, status: Optional[str] = None, q: Optional[str] = None):
    """The caller's complaints, newest first; `status=all` disables the filter."""
    from main import get_complaints_service  # type: ignore

    user, error = _current_user(request)
    if error:
        return error
    items = get_complaints_service().list_for_student(user.id, status=status, q=q)
    return json_private([c.to_dict() for c in items])


@complaints_router.post("/api/complaints")
async def submit_complaint(request: Request, payload: ComplaintCreate):
    from main import get_complaints_service  # type: ignore

    csrf = csrf_guard(request)
    if csrf:
        return csrf
    user, error = _current_user(request)
    if error:
        return error
    try:
        complaint = get_complaints_service().submit(
            user,
            category=payload.category,
            description=payload.description,
            message=payload.message,
        )
    except (ValueError, PermissionError) as exc:
        return error_from_exception(exc)
    return json_private(complaint.to_dict(), status_code=201)


@complaints_router.get("/api/complaints/stats")
async def my_complaint_stats(request: Request):
    """Status counts, category counts and the seven-day timeline for the caller."""
    from main import get_complaints_service  # type: ignore

    user, error = _current_user(request)
    if error:
        return error
    service = get_complaints_service()
    return json_private(service.stats(service.list_for_student(user.id)))
