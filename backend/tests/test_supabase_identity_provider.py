"""
Supabase identity adapter – mapping of provider users and error handling.

Uses duck-typed fakes for `client.auth`; no network. The fake client mimics
supabase-py v2, which rewrites the client's Authorization header to the
user's JWT after a successful sign-in.
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from complaints.repo_supabase import SupabaseComplaintsRepo
from identity_access.supabase_auth import (
    AuthenticationError,
    NullIdentityProvider,
    SupabaseIdentityProvider,
    user_record_from_provider,
)


class _Auth:
    def __init__(self, client: "_Client", response=None, error: Exception | None = None, admin=None):
        self.client = client
        self.response = response
        self.error = error
        self.admin = admin
        self.credentials = None

    def sign_in_with_password(self, credentials):
        self.credentials = credentials
        if self.error:
            raise self.error
        token = self.response.session.access_token if self.response and self.response.session else None
        if token:
            self.client.headers["Authorization"] = f"Bearer {token}"
        return self.response


class _Client:
    def __init__(self, key: str = "service-key", **auth_kw):
        self.headers = {"Authorization": f"Bearer {key}"}
        self.auth = _Auth(self, **auth_kw)
        self.seen_headers = []

    def table(self, name):
        self.seen_headers.append(dict(self.headers))
        return SimpleNamespace(
            select=lambda cols: SimpleNamespace(
                order=lambda col, desc=False: SimpleNamespace(execute=lambda: SimpleNamespace(data=[]))
            )
        )


class _Factory:
    def __init__(self, **auth_kw):
        self.auth_kw = auth_kw
        self.clients = []

    def __call__(self):
        client = _Client(**self.auth_kw)
        self.clients.append(client)
        return client


def _signed_in_response(token: str = "tok"):
    return SimpleNamespace(user=_provider_user(), session=SimpleNamespace(access_token=token))


def _provider_user(**kw):
    base = {
        "id": "u-1",
        "email": "dean@uni.test",
        "role": "authenticated",
        "user_metadata": {"name": "Dean"},
        "app_metadata": {"prefs": {"role": "college-admin"}},
    }
    base.update(kw)
    return SimpleNamespace(**base)


def test_maps_app_prefs_name_and_ignores_database_role():
    user = user_record_from_provider(_provider_user())
    assert user.id == "u-1"
    assert user.email == "dean@uni.test"
    assert user.name == "Dean"
    assert user.preferences == {"role": "college-admin"}
    assert user.role is None


def test_user_writable_metadata_never_feeds_preferences():
    raw = {
        "id": "u-2",
        "email": "x@uni.test",
        "user_metadata": {"full_name": "Xi", "prefs": {"role": "super-admin"}, "college": "Hostel"},
        "app_metadata": {"role": "hostel-admin"},
    }
    user = user_record_from_provider(raw)
    assert user.name == "Xi"
    assert user.preferences is None
    assert user.role == "hostel-admin"


def test_missing_id_is_rejected():
    with pytest.raises(AuthenticationError) as exc:
        user_record_from_provider({"email": "x@uni.test"})
    assert exc.value.code == "user_missing"


def test_sign_in_returns_user_and_token():
    factory = _Factory(response=_signed_in_response())
    result = SupabaseIdentityProvider(factory).sign_in(email="dean@uni.test", password="pw")
    assert factory.clients[0].auth.credentials == {"email": "dean@uni.test", "password": "pw"}
    assert result.user.id == "u-1"
    assert result.access_token == "tok"


def test_sign_in_leaves_table_client_credentials_untouched():
    table_client = _Client(key="service-key")
    repo = SupabaseComplaintsRepo(table_client, table="complaints")
    factory = _Factory(response=_signed_in_response("STUDENT-JWT"))
    provider = SupabaseIdentityProvider(factory)

    repo.list_complaints()
    provider.sign_in(email="ana@uni.test", password="pw")
    provider.sign_in(email="ana@uni.test", password="pw")
    repo.list_complaints()

    assert [h["Authorization"] for h in table_client.seen_headers] == ["Bearer service-key", "Bearer service-key"]
    assert len(factory.clients) == 2
    assert all(c is not table_client for c in factory.clients)
    assert factory.clients[0].headers["Authorization"] == "Bearer STUDENT-JWT"


def test_provider_errors_become_invalid_credentials():
    factory = _Factory(error=RuntimeError("Invalid login credentials"))
    with pytest.raises(AuthenticationError) as exc:
        SupabaseIdentityProvider(factory).sign_in(email="a@b.c", password="x")
    assert exc.value.code == "invalid_credentials"


def test_sign_in_without_user_is_rejected():
    factory = _Factory(response=SimpleNamespace(user=None, session=None))
    with pytest.raises(AuthenticationError):
        SupabaseIdentityProvider(factory).sign_in(email="a@b.c", password="x")


def test_unavailable_client_factory_rejects_sign_in():
    with pytest.raises(AuthenticationError) as exc:
        SupabaseIdentityProvider(lambda: None).sign_in(email="a@b.c", password="x")
    assert exc.value.code == "provider_unavailable"


def test_sign_out_revokes_token_via_admin_api():
    revoked = []
    factory = _Factory(admin=SimpleNamespace(sign_out=lambda token: revoked.append(token)))
    provider = SupabaseIdentityProvider(factory)
    provider.sign_out("tok")
    provider.sign_out(None)
    assert revoked == ["tok"]
    assert len(factory.clients) == 1


def test_sign_out_failure_is_logged_not_raised(caplog):
    def fail(token):
        raise RuntimeError("network")

    factory = _Factory(admin=SimpleNamespace(sign_out=fail))
    caplog.set_level("WARNING", logger="complaintdesk.identity_access")
    SupabaseIdentityProvider(factory).sign_out("tok")
    assert any("RuntimeError" in r.getMessage() for r in caplog.records)


def test_null_provider_rejects_every_sign_in():
    with pytest.raises(AuthenticationError) as exc:
        NullIdentityProvider().sign_in(email="a@b.c", password="x")
    assert exc.value.code == "provider_unavailable"
