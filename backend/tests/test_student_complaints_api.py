"""
Student complaints API – submit, own history only, and stats.
"""
from __future__ import annotations

import pytest
import httpx
from httpx import ASGITransport

from identity_access.domain import UserRecord


pytestmark = pytest.mark.anyio("asyncio")

ANA = UserRecord(id="s-1", email="ana@uni.test", name="Ana")
BEN = UserRecord(id="s-2", email="ben@uni.test")


def _client(app_main, sid=None) -> httpx.AsyncClient:
    c = httpx.AsyncClient(transport=ASGITransport(app=app_main.app), base_url="http://test")
    if sid:
        c.cookies.set(app_main.SESSION_COOKIE_NAME, sid)
    return c


async def test_unauthenticated_api_calls_get_json_401(app_main):
    async with _client(app_main) as c:
        r_get = await c.get("/api/complaints")
        r_post = await c.post("/api/complaints", json={"category": "Food", "description": "x"})
    assert r_get.status_code == 401
    assert r_get.json() == {"error": "unauthenticated"}
    assert r_get.headers["Cache-Control"] == "private, no-store"
    assert r_post.status_code == 401


async def test_submit_and_list_own_history(app_main, login_as):
    async with _client(app_main, login_as(ANA)) as c:
        created = await c.post("/api/complaints", json={"category": "hostel", "description": "No water", "message": "  "})
        listed = await c.get("/api/complaints")

    assert created.status_code == 201
    body = created.json()
    assert body["category"] == "Hostel"
    assert body["status"] == "Pending"
    assert body["name"] == "Ana"
    assert body["message"] == ""
    assert [c["id"] for c in listed.json()] == [body["id"]]


async def test_students_never_see_each_others_complaints(app_main, login_as):
    async with _client(app_main, login_as(ANA)) as c:
        await c.post("/api/complaints", json={"category": "Food", "description": "Cold soup"})
    async with _client(app_main, login_as(BEN)) as c:
        r = await c.get("/api/complaints", params={"status": "all"})
    assert r.status_code == 200
    assert r.json() == []


async def test_invalid_category_is_400(app_main, login_as):
    async with _client(app_main, login_as(ANA)) as c:
        r = await c.post("/api/complaints", json={"category": "Library", "description": "Too loud"})
    assert r.status_code == 400
    assert r.json() == {"error": "bad_request", "detail": "invalid_category"}


async def test_missing_description_is_422(app_main, login_as):
    async with _client(app_main, login_as(ANA)) as c:
        r = await c.post("/api/complaints", json={"category": "Food"})
    assert r.status_code == 422


async def test_stats_cover_only_own_complaints(app_main, login_as):
    async with _client(app_main, login_as(ANA)) as c:
        await c.post("/api/complaints", json={"category": "Food", "description": "a"})
        await c.post("/api/complaints", json={"category": "Hostel", "description": "b"})
    async with _client(app_main, login_as(BEN)) as c:
        await c.post("/api/complaints", json={"category": "Food", "description": "c"})
    async with _client(app_main, login_as(ANA)) as c:
        r = await c.get("/api/complaints/stats")

    stats = r.json()
    assert stats["total"] == 2
    assert stats["pending"] == 2
    assert stats["by_category"] == [{"name": "Food", "value": 1}, {"name": "Hostel", "value": 1}]
    assert len(stats["timeline"]) == 7
    assert stats["timeline"][-1]["total"] == 2
