"""
Admin area routes: access gate, role views and complaint management APIs.

Why:
    All admin roles share one router. The access gate picks the view on
    /admin; each view and API then re-checks the caller's resolved role, so a
    `?role=` override can route a request but never grant data access.

Permissions:
    - Views: resolved role equal to the view's role, or `super-admin`.
    - APIs: any admin role; department admins are limited to their scope
      category, `super-admin` sees everything.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel, Field
import logging

from complaints.domain import DEFAULT_SCOPE_BY_ROLE, scope_category_for
from complaints.export import export_csv, export_filename
from identity_access.access import LOGIN_PATH, AdminView, select_destination
from identity_access.domain import SUPER_ADMIN, is_admin_role
from identity_access.roles import resolve_role

from .security import PRIVATE_NO_STORE, csrf_guard, error_from_exception, json_private, private_error

admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("complaintdesk.web.admin")

VIEW_ROLES = {
    "super": "super-admin",
    "college": "college-admin",
    "hostel": "hostel-admin",
    "food": "food-admin",
    "other": "other-admin",
}


class StatusUpdatePayload(BaseModel):
    status: str = Field(..., min_length=1, max_length=32)
    remarks: Optional[str] = Field(default=None, max_length=2000)


class NotePayload(BaseModel):
    note: str = Field(..., min_length=1, max_length=5000)


def _require_admin(request: Request):
    """Return (user, role, scope, error_response) for the calling admin."""
    from main import ROLE_CONFIG  # type: ignore

    user = getattr(request.state, "user", None)
    if user is None:
        return None, None, None, private_error({"error": "unauthenticated"}, status_code=401)
    role = resolve_role(user, ROLE_CONFIG)
    if not is_admin_role(role):
        return None, None, None, private_error({"error": "forbidden"}, status_code=403)
    return user, role, scope_category_for(user, role), None


def _view_scope(user, caller_role: str, view_role: str) -> Optional[str]:
    # A super-admin opening a department view sees that department's default scope.
    if caller_role == view_role:
        return scope_category_for(user, view_role)
    return DEFAULT_SCOPE_BY_ROLE[view_role]


@admin_router.get("/admin/login")
async def admin_login_info():
    return json_private({"action": "/auth/admin/login", "method": "POST", "fields": ["email", "password"]})


@admin_router.get("/admin")
async def admin_entry(request: Request, role: Optional[str] = None):
    """Route the caller to an admin view via the access gate.

    `role` is an optional override; unknown values end at the login page.
    """
    from main import ROLE_CONFIG  # type: ignore

    user = getattr(request.state, "user", None)
    destination = select_destination(user, role, ROLE_CONFIG)
    if not isinstance(destination, AdminView):
        logger.info("Admin gate: login redirect (authenticated=%s)", user is not None)
    return RedirectResponse(url=destination.path, status_code=302, headers=dict(PRIVATE_NO_STORE))


@admin_router.get("/admin/{view}")
async def admin_view(request: Request, view: str, status: Optional[str] = None, q: Optional[str] = None):
    """Dashboard payload for one admin view: scope, stats and visible complaints."""
    from main import ROLE_CONFIG, get_complaints_service  # type: ignore

    view_role = VIEW_ROLES.get(view)
    if view_role is None:
        return private_error({"error": "not_found"}, status_code=404)
    user = getattr(request.state, "user", None)
    if user is None:
        return RedirectResponse(url=LOGIN_PATH, status_code=302)
    caller_role = resolve_role(user, ROLE_CONFIG)
    if caller_role != view_role and caller_role != SUPER_ADMIN:
        return private_error({"error": "forbidden"}, status_code=403)

    scope = _view_scope(user, caller_role, view_role)
    service = get_complaints_service()
    scoped = service.list_for_admin(scope)
    visible = service.list_for_admin(scope, status=status, q=q)
    return json_private(
        {
            "view": view_role,
            "user": {"id": user.id, "email": user.email, "name": user.display_name},
            "scope": scope,
            "stats": service.stats(scoped),
            "complaints": [c.to_dict() for c in visible],
        }
    )


@admin_router.get("/api/admin/complaints")
async def admin_list_complaints(request: Request, status: Optional[str] = None, q: Optional[str] = None):
    from main import get_complaints_service  # type: ignore

    _, role, scope, error = _require_admin(request)
    if error:
        return error
    items = get_complaints_service().list_for_admin(scope, status=status, q=q)
    return json_private({"role": role, "scope": scope, "items": [c.to_dict() for c in items]})


@admin_router.get("/api/admin/complaints/export.csv")
async def admin_export_complaints(request: Request, status: Optional[str] = None, q: Optional[str] = None):
    """Download the filtered complaint list as CSV."""
    from main import get_complaints_service  # type: ignore

    _, _, scope, error = _require_admin(request)
    if error:
        return error
    items = get_complaints_service().list_for_admin(scope, status=status, q=q)
    if not items:
        return private_error({"error": "not_found", "detail": "no_data"}, status_code=404)
    headers = dict(PRIVATE_NO_STORE)
    headers["Content-Disposition"] = f'attachment; filename="{export_filename(scope)}"'
    return Response(content=export_csv(items), media_type="text/csv; charset=utf-8", headers=headers)


@admin_router.patch("/api/admin/complaints/{complaint_id}/status")
async def admin_update_status(request: Request, complaint_id: str, payload: StatusUpdatePayload):
    """Change a complaint's status; the student is notified with the remarks."""
    from main import get_complaints_service  # type: ignore

    csrf = csrf_guard(request)
    if csrf:
        return csrf
    _, _, scope, error = _require_admin(request)
    if error:
        return error
    try:
        updated = get_complaints_service().update_status(scope, complaint_id, status=payload.status, remarks=payload.remarks)
    except (ValueError, LookupError, PermissionError) as exc:
        return error_from_exception(exc)
    return json_private(updated.to_dict())


@admin_router.post("/api/admin/complaints/{complaint_id}/note")
async def admin_annotate(request: Request, complaint_id: str, payload: NotePayload):
    from main import get_complaints_service  # type: ignore

    csrf = csrf_guard(request)
    if csrf:
        return csrf
    _, _, scope, error = _require_admin(request)
    if error:
        return error
    try:
        updated = get_complaints_service().annotate(scope, complaint_id, note=payload.note)
    except (ValueError, LookupError, PermissionError) as exc:
        return error_from_exception(exc)
    return json_private(updated.to_dict())


@admin_router.delete("/api/admin/complaints/{complaint_id}")
async def admin_delete(request: Request, complaint_id: str):
    from main import get_complaints_service  # type: ignore

    csrf = csrf_guard(request)
    if csrf:
        return csrf
    _, _, scope, error = _require_admin(request)
    if error:
        return error
    try:
        get_complaints_service().delete(scope, complaint_id)
    except (LookupError, PermissionError) as exc:
        return error_from_exception(exc)
    return Response(status_code=204, headers=dict(PRIVATE_NO_STORE))
