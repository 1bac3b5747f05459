"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep sign-in/sign-out endpoints in a dedicated router. Credential checks are
    delegated to the identity provider; this module only manages the opaque
    session cookie and, for admins, the role check after sign-in.

Notes:
    - Shared state (session store, provider, role config) lives in `main` and
      is imported inside functions so tests can swap it per case.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
import logging

from identity_access.domain import UserRecord
from identity_access.roles import resolve_role
from identity_access.supabase_auth import AuthenticationError

from .security import csrf_guard, json_private, private_error

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("complaintdesk.web.auth")


class LoginPayload(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=1024)

    @field_validator("email")
    @classmethod
    def _strip_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("invalid_email")
        return v


def _cookie_opts() -> dict:
    """Hardened cookie flags (dev = prod).

    SameSite=Lax keeps the cookie on top-level navigations such as the
    redirect from the admin login to /admin.
    """
    return {"httponly": True, "secure": True, "samesite": "lax", "path": "/"}


def _serialize_user(user: UserRecord, role: str | None = None) -> dict:
    return {"id": user.id, "email": user.email, "name": user.display_name, "role": role}


def _set_session_cookie(response: JSONResponse, session_id: str) -> None:
    from main import SESSION_COOKIE_NAME, SESSION_STORE  # type: ignore

    response.set_cookie(key=SESSION_COOKIE_NAME, value=session_id, max_age=SESSION_STORE.ttl_seconds, **_cookie_opts())


def _clear_session_cookie(response: JSONResponse) -> None:
    from main import SESSION_COOKIE_NAME  # type: ignore

    opts = _cookie_opts()
    response.delete_cookie(key=SESSION_COOKIE_NAME, path=opts["path"], secure=opts["secure"], httponly=opts["httponly"], samesite=opts["samesite"])


def _end_session(session_id: str | None) -> None:
    """Drop the server-side session and sign out at the provider."""
    from main import IDENTITY, SESSION_STORE  # type: ignore

    if not session_id:
        return
    rec = SESSION_STORE.get(session_id)
    SESSION_STORE.delete(session_id)
    if rec is not None:
        IDENTITY.sign_out(rec.access_token)


def _sign_in(request: Request, payload: LoginPayload):
    """Return (session_id, user, created) or raise AuthenticationError.

    A live session for the same email is reused; a session for another account
    is discarded before signing in again.
    """
    from main import IDENTITY, SESSION_STORE  # type: ignore

    current_sid = getattr(request.state, "session_id", None)
    current_user = getattr(request.state, "user", None)
    if current_sid and current_user is not None:
        if (current_user.email or "").lower() == payload.email.lower():
            return current_sid, current_user, False
        _end_session(current_sid)

    result = IDENTITY.sign_in(email=payload.email, password=payload.password)
    rec = SESSION_STORE.create(user=result.user, access_token=result.access_token)
    return rec.session_id, result.user, True


@auth_router.post("/auth/login")
async def login(request: Request, payload: LoginPayload):
    """Student sign-in; sets the session cookie and points to the complaint history."""
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        sid, user, _ = _sign_in(request, payload)
    except AuthenticationError as exc:
        return private_error({"error": "unauthenticated", "detail": exc.code}, status_code=401)
    response = json_private({"user": _serialize_user(user), "redirect": "/complaints"})
    _set_session_cookie(response, sid)
    return response


@auth_router.post("/auth/admin/login")
async def admin_login(request: Request, payload: LoginPayload):
    """Admin sign-in.

    Behavior:
        - Signs in (or reuses the current session for the same email).
        - Resolves the role; without one the session is discarded and the
          call fails with 403 `not_an_admin`.
        - Otherwise responds with `redirect: /admin?role=<role>`; the access
          gate on /admin decides which view that role may open.
    """
    from main import ROLE_CONFIG  # type: ignore

    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        sid, user, _ = _sign_in(request, payload)
    except AuthenticationError as exc:
        return private_error({"error": "unauthenticated", "detail": exc.code}, status_code=401)

    role = resolve_role(user, ROLE_CONFIG)
    if not role:
        _end_session(sid)
        logger.info("Admin sign-in denied: no role")
        response = private_error({"error": "forbidden", "detail": "not_an_admin"}, status_code=403)
        _clear_session_cookie(response)
        return response

    response = json_private({"user": _serialize_user(user, role), "role": role, "redirect": f"/admin?role={role}"})
    _set_session_cookie(response, sid)
    return response


@auth_router.post("/auth/logout")
async def logout(request: Request):
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    _end_session(getattr(request.state, "session_id", None))
    response = json_private({"ok": True, "redirect": "/login"})
    _clear_session_cookie(response)
    return response


@auth_router.get("/auth/me")
async def me(request: Request):
    """Current user with the resolved admin role (None for students)."""
    from main import ROLE_CONFIG  # type: ignore

    user = getattr(request.state, "user", None)
    if user is None:
        return private_error({"error": "unauthenticated"}, status_code=401)
    return json_private(_serialize_user(user, resolve_role(user, ROLE_CONFIG)))
