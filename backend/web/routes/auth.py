"""
Authentication API routes: email/password login, logout and the current user.

Why:
    The dashboard pages and the JSON API share one server-side session model:
    an opaque HttpOnly cookie pointing at a `SessionRecord` that holds only the
    user id. The middleware re-reads the user on each request, so `/api/me`
    always reflects the latest role and permissions.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from backend.identity_access.users import authenticate
from backend.web import wiring
from backend.web.auth_utils import (
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
    clear_session_cookie,
    set_session_cookie,
)
from backend.web.config import current_environment
from backend.web.routes.security import csrf_guard, current_user, json_private, private_error


auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("freightwise.web")


class LoginPayload(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=1024)


@auth_router.post("/api/auth/login")
async def api_login(request: Request, payload: LoginPayload):
    """Exchange email/password for a session cookie.

    Behavior:
        - 200 with the public user dict and `Set-Cookie` on success.
        - 401 `{"error": "invalid_credentials"}` otherwise; the response does
          not reveal whether the email exists.
    """
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    # PBKDF2 verification is CPU-bound
    user = await asyncio.to_thread(authenticate, wiring.get_user_store(), payload.email, payload.password)
    if user is None:
        logger.info("auth.login.failed")
        return private_error({"error": "invalid_credentials"}, status_code=401)
    rec = wiring.get_session_store().create(user_id=user.id, ttl_seconds=SESSION_TTL_SECONDS)
    logger.info("auth.login.succeeded user_id=%s", user.id)
    resp = json_private(user.to_public_dict())
    set_session_cookie(resp, rec.session_id, environment=current_environment(), max_age=SESSION_TTL_SECONDS)
    return resp


@auth_router.post("/api/auth/logout")
async def api_logout(request: Request):
    """Drop the server-side session and expire the cookie (idempotent, 204)."""
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        wiring.get_session_store().delete(sid)
    resp = Response(status_code=204, headers={"Cache-Control": "private, no-store"})
    clear_session_cookie(resp, environment=current_environment())
    return resp


@auth_router.get("/api/me")
async def get_me(request: Request):
    user = current_user(request)
    if not user:
        return private_error({"error": "unauthenticated"}, status_code=401)
    rec = wiring.get_session_store().get(request.cookies.get(SESSION_COOKIE_NAME) or "")
    expires_at = (
        datetime.fromtimestamp(rec.expires_at, tz=timezone.utc).isoformat(timespec="seconds")
        if rec and rec.expires_at
        else None
    )
    return json_private({**user, "expires_at": expires_at})
