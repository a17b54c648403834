"""
User management API: permission guards, validation mapping and the
role-change permission reset.
"""
from __future__ import annotations

import httpx
from httpx import ASGITransport
import pytest

from backend.web import main, wiring
from backend.web.auth_utils import SESSION_COOKIE_NAME
from conftest import ADMIN_ID, AGENT_ID


pytestmark = pytest.mark.anyio("asyncio")

NEW_USER = {"email": "dave@freightwise.com", "name": "Dave Dispatch", "password": "dispatch-42", "role": "agent"}


def _client(sid: str | None = None) -> httpx.AsyncClient:
    c = httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")
    if sid:
        c.cookies.set(SESSION_COOKIE_NAME, sid)
    return c


@pytest.mark.anyio
async def test_anonymous_requests_are_rejected_with_401():
    async with _client() as c:
        r = await c.get("/api/admin/users")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated"}
    assert r.headers.get("Cache-Control") == "private, no-store"


@pytest.mark.anyio
async def test_agents_lack_user_permissions(agent_sid):
    async with _client(agent_sid) as c:
        listing = await c.get("/api/admin/users")
        create = await c.post("/api/admin/users", json=NEW_USER)
        delete = await c.delete(f"/api/admin/users/{ADMIN_ID}")
    assert listing.status_code == 403
    assert listing.json() == {"error": "forbidden"}
    assert create.status_code == 403
    assert delete.status_code == 403
    assert wiring.get_user_store().get(ADMIN_ID) is not None


@pytest.mark.anyio
async def test_admin_lists_users_sorted_without_secrets(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.get("/api/admin/users")
    assert r.status_code == 200
    users = r.json()
    assert [u["name"] for u in users] == ["Admin Freight", "Alice Agent", "Bob Broker"]
    assert all("password_hash" not in u for u in users)


@pytest.mark.anyio
async def test_create_user_defaults_permissions_from_role(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.post("/api/admin/users", json=NEW_USER)
        assert r.status_code == 201
        created = r.json()
        fetched = await c.get(f"/api/admin/users/{created['id']}")
    assert created["permissions"] == {
        "prices": ["view"],
        "users": [],
        "announcements": ["view"],
        "rfqs": ["view", "create"],
    }
    assert fetched.json() == created


@pytest.mark.anyio
async def test_duplicate_email_is_a_conflict(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.post("/api/admin/users", json=dict(NEW_USER, email="AGENT1@freightwise.com"))
    assert r.status_code == 409
    assert r.json() == {"error": "conflict", "detail": "email_taken"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "overrides, field, code",
    [
        ({"role": "owner"}, "role", "invalid_role"),
        ({"email": "nope"}, "email", "invalid_email"),
        ({"name": "D"}, "name", "invalid_name"),
    ],
)
async def test_create_validation_errors_map_to_400(admin_sid, overrides, field, code):
    async with _client(admin_sid) as c:
        r = await c.post("/api/admin/users", json=dict(NEW_USER, **overrides))
    assert r.status_code == 400
    assert r.json() == {"error": "bad_request", "detail": code, "field": field}


@pytest.mark.anyio
async def test_promoting_an_agent_resets_permissions_to_admin_defaults(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.patch(f"/api/admin/users/{AGENT_ID}", json={"role": "admin"})
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "admin"
    assert body["permissions"]["users"] == ["view", "create", "edit", "delete"]


@pytest.mark.anyio
async def test_patch_rejects_email_changes_and_unknown_fields(admin_sid):
    async with _client(admin_sid) as c:
        email = await c.patch(f"/api/admin/users/{AGENT_ID}", json={"email": "new@freightwise.com"})
        unknown = await c.patch(f"/api/admin/users/{AGENT_ID}", json={"is_superuser": True})
    assert email.status_code == 400
    assert email.json()["detail"] == "immutable"
    assert unknown.status_code == 400
    assert unknown.json() == {"error": "bad_request", "detail": "unknown_field", "field": "is_superuser"}
    assert wiring.get_user_store().get(AGENT_ID).email == "agent1@freightwise.com"


@pytest.mark.anyio
async def test_unknown_user_ids_are_404(admin_sid):
    async with _client(admin_sid) as c:
        get = await c.get("/api/admin/users/missing")
        patch = await c.patch("/api/admin/users/missing", json={"name": "Nobody Here"})
        delete = await c.delete("/api/admin/users/missing")
    assert (get.status_code, patch.status_code, delete.status_code) == (404, 404, 404)


@pytest.mark.anyio
async def test_admin_cannot_delete_themselves(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.delete(f"/api/admin/users/{ADMIN_ID}")
    assert r.status_code == 400
    assert r.json()["detail"] == "cannot_delete_self"


@pytest.mark.anyio
async def test_deleting_a_user_ends_their_sessions(admin_sid, agent_sid):
    async with _client(admin_sid) as c:
        r = await c.delete(f"/api/admin/users/{AGENT_ID}")
    assert r.status_code == 204
    assert wiring.get_session_store().get(agent_sid) is None
    async with _client(agent_sid) as c:
        me = await c.get("/api/me")
    assert me.status_code == 401


@pytest.mark.anyio
async def test_cross_origin_writes_are_refused(admin_sid):
    async with _client(admin_sid) as c:
        r = await c.post("/api/admin/users", json=NEW_USER, headers={"Origin": "https://evil.example"})
    assert r.status_code == 403
    assert r.json()["detail"] == "csrf_violation"
    assert wiring.get_user_store().get_by_email(NEW_USER["email"]) is None
