"""
Auth API: login, logout and the current user.

Sessions are opaque server-side records; the cookie is HttpOnly, Secure and
SameSite=Lax. Because the test transport speaks plain http, the session id is
read from Set-Cookie and sent back explicitly.
"""
from __future__ import annotations

import re

import httpx
from httpx import ASGITransport
import pytest

from backend.web import main, wiring
from backend.web.auth_utils import SESSION_COOKIE_NAME
from conftest import ADMIN_ID, AGENT_ID, DEMO_PASSWORD


pytestmark = pytest.mark.anyio("asyncio")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")


def _session_from(resp: httpx.Response) -> str:
    match = re.search(rf"{SESSION_COOKIE_NAME}=([^;]+)", resp.headers.get("set-cookie", ""))
    assert match, "session cookie missing"
    return match.group(1)


@pytest.mark.anyio
async def test_login_sets_hardened_cookie_and_returns_public_user():
    async with _client() as c:
        r = await c.post("/api/auth/login", json={"email": "Admin@FreightWise.com", "password": DEMO_PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == ADMIN_ID
    assert body["role"] == "admin"
    assert "password_hash" not in body
    cookie = r.headers.get("set-cookie", "").lower()
    assert "httponly" in cookie
    assert "secure" in cookie
    assert "samesite=lax" in cookie
    assert "path=/" in cookie
    assert r.headers.get("Cache-Control") == "private, no-store"
    assert wiring.get_session_store().get(_session_from(r)).user_id == ADMIN_ID


@pytest.mark.anyio
@pytest.mark.parametrize(
    "email, password",
    [("admin@freightwise.com", "wrong-password"), ("nobody@freightwise.com", DEMO_PASSWORD)],
)
async def test_login_failures_do_not_reveal_which_part_was_wrong(email, password):
    async with _client() as c:
        r = await c.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 401
    assert r.json() == {"error": "invalid_credentials"}
    assert "set-cookie" not in r.headers


@pytest.mark.anyio
async def test_login_rejects_cross_origin_posts():
    async with _client() as c:
        r = await c.post(
            "/api/auth/login",
            json={"email": "admin@freightwise.com", "password": DEMO_PASSWORD},
            headers={"Origin": "http://evil.example"},
        )
    assert r.status_code == 403
    assert r.json() == {"error": "forbidden", "detail": "csrf_violation"}


@pytest.mark.anyio
async def test_me_requires_a_session():
    async with _client() as c:
        r = await c.get("/api/me")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated"}


@pytest.mark.anyio
async def test_me_returns_permissions_and_expiry(agent_sid):
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, agent_sid)
        r = await c.get("/api/me")
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == AGENT_ID
    assert body["permissions"]["rfqs"] == ["view", "create"]
    assert body["permissions"]["users"] == []
    assert body["expires_at"]


@pytest.mark.anyio
async def test_permission_changes_apply_to_existing_sessions(admin_sid, agent_sid):
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, admin_sid)
        r = await c.patch(f"/api/admin/users/{AGENT_ID}", json={"permissions": {"users": ["view"]}})
        assert r.status_code == 200

        c.cookies.set(SESSION_COOKIE_NAME, agent_sid)
        me = await c.get("/api/me")
        users = await c.get("/api/admin/users")
    assert me.json()["permissions"] == {"users": ["view"]}
    assert users.status_code == 200


@pytest.mark.anyio
async def test_logout_ends_the_session_and_expires_the_cookie(agent_sid):
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, agent_sid)
        r = await c.post("/api/auth/logout")
        assert r.status_code == 204
        assert SESSION_COOKIE_NAME in r.headers.get("set-cookie", "")
        me = await c.get("/api/me")
    assert me.status_code == 401
    assert wiring.get_session_store().get(agent_sid) is None


@pytest.mark.anyio
async def test_logout_without_session_is_a_no_op():
    async with _client() as c:
        r = await c.post("/api/auth/logout")
    assert r.status_code == 204


@pytest.mark.anyio
async def test_unknown_session_id_is_anonymous():
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, "not-a-session")
        r = await c.get("/api/me")
    assert r.status_code == 401
