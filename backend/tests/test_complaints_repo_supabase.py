"""
Supabase complaints repository – query shape against a fake PostgREST client.

The fake records every builder call so the tests can assert that student
filtering and ordering happen server-side.
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from complaints.repo_supabase import SupabaseComplaintsRepo, build_supabase_client


class _Query:
    def __init__(self, table: "_FakeTable", op: str, arg=None):
        self.table = table
        self.calls = [(op, arg)]

    def eq(self, column, value):
        self.calls.append(("eq", (column, value)))
        return self

    def order(self, column, desc=False):
        self.calls.append(("order", (column, desc)))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def execute(self):
        self.table.executed.append(self.calls)
        return SimpleNamespace(data=self.table.responses.pop(0) if self.table.responses else [])


class _FakeTable:
    def __init__(self):
        self.executed = []
        self.responses = []

    def select(self, columns):
        return _Query(self, "select", columns)

    def insert(self, row):
        return _Query(self, "insert", row)

    def update(self, values):
        return _Query(self, "update", values)

    def delete(self):
        return _Query(self, "delete")


class _FakeClient:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        return self.tables.setdefault(name, _FakeTable())


ROW = {
    "id": "c-1",
    "student_id": "s-1",
    "name": "Ana",
    "email": "ana@uni.test",
    "category": "Food",
    "description": "Cold soup",
    "status": "Pending",
    "created_at": "2026-10-19T09:00:00+00:00",
}


def test_list_for_student_filters_and_orders_server_side():
    client = _FakeClient()
    repo = SupabaseComplaintsRepo(client, table="complaints")
    client.table("complaints").responses.append([ROW])

    items = repo.list_complaints(student_id="s-1")

    assert [c.id for c in items] == ["c-1"]
    calls = client.table("complaints").executed[0]
    assert calls[0][0] == "select"
    assert ("eq", ("student_id", "s-1")) in calls
    assert ("order", ("created_at", True)) in calls


def test_create_writes_only_known_columns():
    client = _FakeClient()
    repo = SupabaseComplaintsRepo(client, table="complaints")
    client.table("complaints").responses.append([ROW])

    created = repo.create_complaint({**ROW, "id": "ignored", "extra": 1})

    assert created.id == "c-1"
    op, row = client.table("complaints").executed[0][0]
    assert op == "insert"
    assert "extra" not in row and "id" not in row


def test_create_raises_when_nothing_returned():
    repo = SupabaseComplaintsRepo(_FakeClient(), table="complaints")
    with pytest.raises(RuntimeError):
        repo.create_complaint(ROW)


def test_update_is_limited_to_mutable_fields_and_delete_reports_result():
    client = _FakeClient()
    repo = SupabaseComplaintsRepo(client, table="complaints")
    table = client.table("complaints")
    table.responses.append([{**ROW, "status": "Resolved"}])

    updated = repo.update_complaint("c-1", {"status": "Resolved", "category": "Hostel"})

    assert updated is not None and updated.status == "Resolved"
    assert table.executed[0][0] == ("update", {"status": "Resolved"})
    assert ("eq", ("id", "c-1")) in table.executed[0]
    assert repo.delete_complaint("c-1") is False


def test_table_name_defaults_to_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("COMPLAINTS_TABLE", "tickets")
    client = _FakeClient()
    SupabaseComplaintsRepo(client).list_complaints()
    assert "tickets" in client.tables


def test_build_client_returns_none_without_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    assert build_supabase_client() is None
