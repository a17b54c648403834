"""
User management API (admin dashboard).

Permissions:
    Every endpoint requires a session and the matching `users:<action>`
    permission; the checks run against the user re-read by the middleware.

Validation:
    Service-level `ValidationError(field, code)` maps to 400, a duplicate email
    to 409. Changing `role` without `permissions` resets permissions to the new
    role's defaults.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from backend.identity_access.domain import FeatureScope, PermissionAction
from backend.identity_access.users import (
    EmailTakenError,
    ValidationError,
    create_user,
    delete_user,
    get_user,
    list_users,
    update_user,
)
from backend.web import wiring
from backend.web.routes.security import (
    csrf_guard,
    json_private,
    private_error,
    require_permission,
    validation_error,
)


users_router = APIRouter(tags=["Users"])


class UserCreate(BaseModel):
    email: str = Field(max_length=320)
    name: str = Field(max_length=200)
    password: str = Field(max_length=1024)
    role: str
    permissions: Optional[Dict[str, List[str]]] = None


class UserUpdate(BaseModel):
    # Extra keys are kept so `email` reaches the service and is rejected there.
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(default=None, max_length=200)
    password: Optional[str] = Field(default=None, max_length=1024)
    role: Optional[str] = None
    permissions: Optional[Dict[str, List[str]]] = None


def _conflict() -> Response:
    return private_error({"error": "conflict", "detail": "email_taken"}, status_code=409)


@users_router.get("/api/admin/users")
async def api_list_users(request: Request):
    _user, err = require_permission(request, FeatureScope.USERS, PermissionAction.VIEW)
    if err:
        return err
    return json_private([u.to_public_dict() for u in list_users(wiring.get_user_store())])


@users_router.get("/api/admin/users/{user_id}")
async def api_get_user(request: Request, user_id: str):
    _user, err = require_permission(request, FeatureScope.USERS, PermissionAction.VIEW)
    if err:
        return err
    found = get_user(wiring.get_user_store(), user_id)
    if found is None:
        return private_error({"error": "not_found"}, status_code=404)
    return json_private(found.to_public_dict())


@users_router.post("/api/admin/users")
async def api_create_user(request: Request, payload: UserCreate):
    """Create a user (201). Missing permissions default from the role."""
    _user, err = require_permission(request, FeatureScope.USERS, PermissionAction.CREATE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        created = create_user(wiring.get_user_store(), payload.model_dump())
    except EmailTakenError:
        return _conflict()
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    return json_private(created.to_public_dict(), status_code=201)


@users_router.patch("/api/admin/users/{user_id}")
async def api_update_user(request: Request, user_id: str, payload: UserUpdate):
    _user, err = require_permission(request, FeatureScope.USERS, PermissionAction.EDIT)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    updates = payload.model_dump(exclude_unset=True)
    try:
        updated = update_user(wiring.get_user_store(), user_id, updates)
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    if updated is None:
        return private_error({"error": "not_found"}, status_code=404)
    return json_private(updated.to_public_dict())


@users_router.delete("/api/admin/users/{user_id}")
async def api_delete_user(request: Request, user_id: str):
    """Delete a user and end their sessions; self-deletion is refused (400)."""
    user, err = require_permission(request, FeatureScope.USERS, PermissionAction.DELETE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    if user and user.get("id") == user_id:
        return validation_error("id", "cannot_delete_self")
    if not delete_user(wiring.get_user_store(), user_id):
        return private_error({"error": "not_found"}, status_code=404)
    wiring.get_session_store().delete_for_user(user_id)
    return Response(status_code=204, headers={"Cache-Control": "private, no-store"})
