"""
Shared web security helpers (FastAPI-agnostic utilities for routes).

Contains the same-origin check used by every write endpoint and the
non-cacheable JSON response helpers. Keeping a single implementation avoids
security drift between the student and admin adapters.
"""
from __future__ import annotations

import os
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse

PRIVATE_NO_STORE = {"Cache-Control": "private, no-store"}


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    return scheme, p.hostname.lower(), int(p.port or _default_port(scheme))


def _server_origin(request: Request) -> tuple[str, str, int]:
    """Origin the server is reachable at; honors X-Forwarded-* only when trusted."""
    trust_proxy = (os.getenv("COMPLAINTDESK_TRUST_PROXY", "false") or "").lower() == "true"
    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port or _default_port(scheme))
    if not trust_proxy:
        return scheme, host, port

    xf_proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0].strip().lower()
    xf_host = (request.headers.get("x-forwarded-host") or "").split(",")[0].strip().lower()
    xf_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
    if xf_proto:
        scheme = xf_proto
        port = _default_port(scheme)
    if xf_host:
        if ":" in xf_host:
            host, port_str = xf_host.rsplit(":", 1)
            try:
                port = int(port_str)
            except ValueError:
                port = _default_port(scheme)
        else:
            host = xf_host
    if xf_port:
        try:
            port = int(xf_port)
        except ValueError:
            port = _default_port(scheme)
    return scheme, host, port


def is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients, unless strict
      mode applies (see `csrf_guard`).
    """
    candidate = request.headers.get("origin") or request.headers.get("referer")
    if not candidate:
        return True
    try:
        return _parse_origin(candidate) == _server_origin(request)
    except ValueError:
        return False


def _strict_csrf() -> bool:
    env = (os.getenv("COMPLAINTDESK_ENV", "dev") or "").lower()
    return env == "prod" or (os.getenv("STRICT_CSRF", "false") or "").lower() == "true"


def csrf_guard(request: Request) -> JSONResponse | None:
    """Reject cross-site browser writes; returns an error response or None.

    In production (or with STRICT_CSRF=true) an Origin or Referer header is
    mandatory for write requests.
    """
    if _strict_csrf() and not (request.headers.get("origin") or request.headers.get("referer")):
        return private_error({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)
    if not is_same_origin(request):
        return private_error({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)
    return None


def json_private(payload, *, status_code: int = 200) -> JSONResponse:
    """JSON response kept out of shared caches (user-scoped data)."""
    return JSONResponse(content=payload, status_code=status_code, headers=dict(PRIVATE_NO_STORE))


def private_error(payload: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=dict(PRIVATE_NO_STORE))


def error_from_exception(exc: Exception) -> JSONResponse:
    """Map service-layer exceptions to JSON error responses."""
    detail = str(exc) or exc.__class__.__name__
    if isinstance(exc, PermissionError):
        if detail == "unauthenticated":
            return private_error({"error": "unauthenticated"}, status_code=401)
        return private_error({"error": "forbidden"}, status_code=403)
    if isinstance(exc, LookupError):
        return private_error({"error": "not_found", "detail": detail}, status_code=404)
    if isinstance(exc, ValueError):
        return private_error({"error": "bad_request", "detail": detail}, status_code=400)
    raise exc
