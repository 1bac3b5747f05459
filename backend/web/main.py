"Complaint Desk"
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from complaints.notify import StatusWebhookNotifier
from complaints.repo_memory import InMemoryComplaintsRepo
from complaints.repo_supabase import SupabaseComplaintsRepo, build_supabase_client
from complaints.service import ComplaintsService
from identity_access.roles import load_role_assignment_config
from identity_access.stores import SessionStore
from identity_access.supabase_auth import NullIdentityProvider, SupabaseIdentityProvider


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via COMPLAINTDESK_ENABLE_DOTENV (default true
      outside pytest).
    """
    if _under_pytest():
        return False
    flag = (os.getenv("COMPLAINTDESK_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


try:
    from dotenv import load_dotenv
    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

import config as _cfg  # noqa: E402

_cfg.ensure_secure_config_on_startup()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("complaintdesk.web")

# --- Settings -------------------------------------------------------------------


class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return os.getenv("COMPLAINTDESK_ENV", "dev").lower()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


SETTINGS = AuthSettings()
SESSION_COOKIE_NAME = "complaintdesk_session"

# Built once; read-only for the process lifetime.
ROLE_CONFIG = load_role_assignment_config()

# --- Adapter wiring (Supabase when configured, in-memory otherwise) -------------

# The table client is never used to sign in, so its Authorization header stays
# the service key. Sign-ins run on fresh clients from the factory.
_SUPABASE = None if _under_pytest() else build_supabase_client()
if _SUPABASE is not None:
    IDENTITY = SupabaseIdentityProvider(build_supabase_client)
    COMPLAINTS_REPO = SupabaseComplaintsRepo(_SUPABASE)
    logger.info("Adapters wired: Supabase")
else:
    IDENTITY = NullIdentityProvider()
    COMPLAINTS_REPO = InMemoryComplaintsRepo()
    if not _under_pytest():
        logger.warning("Supabase not configured; using in-memory complaints and rejecting sign-ins")

NOTIFIER = StatusWebhookNotifier()
SESSION_STORE = SessionStore(ttl_seconds=_cfg.session_ttl_seconds())


def get_complaints_service() -> ComplaintsService:
    return ComplaintsService(COMPLAINTS_REPO, notifier=NOTIFIER)


app = FastAPI(title="Complaint Desk", description="Student complaints and admin triage", version="0.1.0")

from routes.auth import auth_router  # noqa: E402
from routes.admin import admin_router  # noqa: E402
from routes.complaints import complaints_router  # noqa: E402

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(complaints_router)

# --- Auth middleware ------------------------------------------------------------

# Paths reachable without a session. `/admin` is listed because the access gate
# itself turns a missing user into a login redirect.
_PUBLIC_EXACT = ("/", "/health", "/login", "/admin", "/admin/login", "/favicon.ico")


def _is_public_path(path: str) -> bool:
    return path.startswith("/auth/") or path in _PUBLIC_EXACT


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    request.state.user = None
    request.state.session_id = None

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)
    if rec:
        # Read-only user context for downstream handlers; roles are resolved per request.
        request.state.user = rec.user
        request.state.session_id = rec.session_id
        return await call_next(request)

    if _is_public_path(path):
        return await call_next(request)
    if path.startswith("/api/"):
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={"Cache-Control": "private, no-store"})
    login = "/admin/login" if path.startswith("/admin") else "/login"
    return RedirectResponse(url=login, status_code=302)


# --- Security headers middleware ------------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self' data:; "
        "font-src 'self' data:; connect-src 'self'; frame-ancestors 'self'",
    )
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    return response


# --- Misc endpoints -------------------------------------------------------------

@app.get("/health")
async def health():
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "no-store"})


@app.get("/")
async def index(request: Request):
    """Entry point: signed-in users go to their complaints, others to login."""
    target = "/complaints" if getattr(request.state, "user", None) else "/login"
    return RedirectResponse(url=target, status_code=302)


@app.get("/login")
async def student_login_info():
    return JSONResponse({"action": "/auth/login", "method": "POST", "fields": ["email", "password"]})


@app.get("/complaints")
async def complaints_home():
    # Signed-in landing path; the client renders history from /api/complaints.
    return RedirectResponse(url="/api/complaints", status_code=302)


@app.get("/favicon.ico")
async def favicon():
    return Response(status_code=204)
