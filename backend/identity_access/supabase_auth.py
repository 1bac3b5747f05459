"""
Identity provider adapters (Supabase Auth).

This module is a thin, framework-agnostic adapter used by the web layer to
authenticate a user with email/password against the hosted identity provider
and to map the provider's user object onto `UserRecord`.

Security: Never log credentials or tokens. Sessions live in the provider; the
web layer only keeps the resulting user record server-side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol
import logging

from .domain import UserRecord

logger = logging.getLogger("complaintdesk.identity_access")


class AuthenticationError(Exception):
    """Raised when the identity provider rejects a sign-in."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class SignInResult:
    user: UserRecord
    access_token: Optional[str] = None


class IdentityProviderProtocol(Protocol):
    def sign_in(self, *, email: str, password: str) -> SignInResult:
        ...

    def sign_out(self, access_token: Optional[str]) -> None:
        ...


def _attr(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def user_record_from_provider(raw: Any) -> UserRecord:
    """Map a Supabase user (object or dict) to a `UserRecord`.

    - `app_metadata.prefs` -> preferences; `user_metadata` is writable by the
      user through `auth.updateUser`, so role and scope signals never come
      from it.
    - `app_metadata.role` -> role; the top-level `role` is the database role
      ("authenticated") and is ignored.
    - `user_metadata.name` / `full_name` -> display name.
    """
    user_id = _attr(raw, "id")
    if not user_id:
        raise AuthenticationError("user_missing")
    user_meta = _attr(raw, "user_metadata") or {}
    app_meta = _attr(raw, "app_metadata") or {}
    preferences = None
    role = None
    if isinstance(app_meta, Mapping):
        preferences = app_meta.get("prefs")
        role = app_meta.get("role")
    name = None
    if isinstance(user_meta, Mapping):
        name = user_meta.get("name") or user_meta.get("full_name")
    return UserRecord(
        id=str(user_id),
        email=_attr(raw, "email") or None,
        name=str(name) if name else None,
        preferences=preferences,
        role=role,
    )


class SupabaseIdentityProvider:
    """Authenticate against Supabase Auth (GoTrue) with email/password.

    `client_factory` returns a fresh, duck-typed client (anything exposing
    `.auth.sign_in_with_password` and `.auth.admin.sign_out`), e.g.
    `build_supabase_client`. Every call gets its own client: a successful
    sign-in rewrites the client's Authorization header to the user's JWT, so
    the client used for table access must never be the one that signs in.
    """

    def __init__(self, client_factory: Callable[[], Any]) -> None:
        self._client_factory = client_factory

    def _new_client(self) -> Any:
        client = self._client_factory()
        if client is None:
            raise AuthenticationError("provider_unavailable")
        return client

    def sign_in(self, *, email: str, password: str) -> SignInResult:
        client = self._new_client()
        try:
            res = client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            # Provider errors carry user-facing text; keep only the class name.
            logger.info("Sign-in rejected by provider: %s", exc.__class__.__name__)
            raise AuthenticationError("invalid_credentials") from exc
        user = _attr(res, "user")
        if user is None:
            raise AuthenticationError("invalid_credentials")
        session = _attr(res, "session")
        token = _attr(session, "access_token")
        return SignInResult(user=user_record_from_provider(user), access_token=token)

    def sign_out(self, access_token: Optional[str]) -> None:
        """Revoke `access_token` via the admin API; without a token nothing is sent."""
        if not access_token:
            return
        try:
            admin = getattr(self._new_client().auth, "admin", None)
            if admin is None or not hasattr(admin, "sign_out"):
                logger.info("Provider has no admin sign-out; token left to expire")
                return
            admin.sign_out(access_token)
        except Exception as exc:
            logger.warning("Provider sign-out failed: %s", exc.__class__.__name__)


class NullIdentityProvider:
    """Used when no provider is configured; every sign-in is rejected."""

    def sign_in(self, *, email: str, password: str) -> SignInResult:
        raise AuthenticationError("provider_unavailable")

    def sign_out(self, access_token: Optional[str]) -> None:
        return None


__all__ = [
    "AuthenticationError",
    "IdentityProviderProtocol",
    "NullIdentityProvider",
    "SignInResult",
    "SupabaseIdentityProvider",
    "user_record_from_provider",
]
