"""
Pytest configuration for backend tests.

Why: Put `backend/` and `backend/web` on sys.path (the app uses flat imports),
force AnyIO to the asyncio backend, and reset the app's module-level state
(sessions, repository, provider, role config) before every test so cases do
not leak into each other.
"""
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from identity_access.domain import UserRecord  # noqa: E402
from identity_access.supabase_auth import AuthenticationError, SignInResult  # noqa: E402


class FakeIdentityProvider:
    """Password table standing in for the hosted identity provider."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Tuple[str, UserRecord]] = {}
        self.sign_ins: List[str] = []
        self.sign_outs: List[Optional[str]] = []

    def add(self, user: UserRecord, password: str = "secret") -> UserRecord:
        self.accounts[(user.email or "").lower()] = (password, user)
        return user

    def sign_in(self, *, email: str, password: str) -> SignInResult:
        self.sign_ins.append(email)
        entry = self.accounts.get(email.lower())
        if entry is None or entry[0] != password:
            raise AuthenticationError("invalid_credentials")
        return SignInResult(user=entry[1], access_token=f"token-{entry[1].id}")

    def sign_out(self, access_token: Optional[str]) -> None:
        self.sign_outs.append(access_token)


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list = []

    def notify_status_change(self, complaint, remarks: str) -> None:
        self.calls.append((complaint, remarks))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven toggles deterministic; tests opt in explicitly."""
    for var in (
        "COMPLAINTDESK_ENV",
        "COMPLAINTDESK_TRUST_PROXY",
        "STRICT_CSRF",
        "STATUS_WEBHOOK_URL",
        "ADMIN_EMAILS",
        "ADMIN_EMAIL_ROLE_MAP",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_app_state(monkeypatch: pytest.MonkeyPatch):
    """Fresh in-memory adapters on `main` for every test."""
    try:
        import main  # type: ignore
    except Exception:
        yield
        return
    from complaints.repo_memory import InMemoryComplaintsRepo
    from identity_access.roles import RoleAssignmentConfig
    from identity_access.stores import SessionStore

    monkeypatch.setattr(main, "SESSION_STORE", SessionStore())
    monkeypatch.setattr(main, "COMPLAINTS_REPO", InMemoryComplaintsRepo())
    monkeypatch.setattr(main, "NOTIFIER", RecordingNotifier())
    monkeypatch.setattr(main, "IDENTITY", FakeIdentityProvider())
    monkeypatch.setattr(main, "ROLE_CONFIG", RoleAssignmentConfig())
    main.SETTINGS.override_environment(None)
    yield
    main.SETTINGS.override_environment(None)


@pytest.fixture
def app_main():
    import main  # type: ignore

    return main


@pytest.fixture
def login_as(app_main):
    """Create a server-side session for `user` and return its id."""

    def _login(user: UserRecord) -> str:
        return app_main.SESSION_STORE.create(user=user).session_id

    return _login
