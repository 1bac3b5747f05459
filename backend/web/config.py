"""
Configuration and startup security checks for the complaint desk.

Why: Complaint data includes student names and emails. This module provides a
single guard that refuses obviously insecure production deployments without
burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

_PLACEHOLDERS = ("CHANGE_ME", "DUMMY", "TEST_ONLY")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _is_placeholder(value: str) -> bool:
    upper = value.strip().upper()
    return not upper or any(upper.startswith(p) for p in _PLACEHOLDERS)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - SUPABASE_URL and SUPABASE_KEY must be set and not placeholders; without
      them the app would silently fall back to in-memory storage.
    - SUPABASE_URL must use https.
    - STATUS_WEBHOOK_URL, when set, must use https (payload carries emails).
    - SESSION_TTL_SECONDS, when set, must be a positive integer.
    """
    env = os.getenv("COMPLAINTDESK_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_KEY") or "").strip()
    if not url or not key or _is_placeholder(key):
        raise SystemExit(
            "Refusing to start: SUPABASE_URL/SUPABASE_KEY are unset or placeholders in production."
        )
    if not url.lower().startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    webhook = (os.getenv("STATUS_WEBHOOK_URL") or "").strip()
    if webhook and not webhook.lower().startswith("https://"):
        raise SystemExit("Refusing to start: STATUS_WEBHOOK_URL must use https in production.")

    ttl_raw = (os.getenv("SESSION_TTL_SECONDS") or "").strip()
    if ttl_raw:
        try:
            ttl = int(ttl_raw)
        except ValueError:
            raise SystemExit("Refusing to start: SESSION_TTL_SECONDS must be an integer.")
        if ttl <= 0:
            raise SystemExit("Refusing to start: SESSION_TTL_SECONDS must be positive.")


def session_ttl_seconds() -> int:
    """Session lifetime in seconds (default one hour; invalid values fall back)."""
    try:
        ttl = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
    except ValueError:
        return 3600
    return ttl if ttl > 0 else 3600
