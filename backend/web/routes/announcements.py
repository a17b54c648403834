"""
Internal announcements API.

Announcements are internal: reading requires `announcements:view`, which
every role has by default. The author is taken from the session, never from
the request body.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from backend.freight.models import ValidationError
from backend.identity_access.domain import FeatureScope, PermissionAction
from backend.web import wiring
from backend.web.routes.security import (
    csrf_guard,
    json_private,
    private_error,
    require_permission,
    validation_error,
)


announcements_router = APIRouter(tags=["Announcements"])


class AnnouncementCreate(BaseModel):
    title: str = Field(max_length=200)
    content: str = Field(max_length=5000)


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = Field(default=None, max_length=5000)


@announcements_router.get("/api/announcements")
async def list_announcements(request: Request):
    """Newest first."""
    _user, err = require_permission(request, FeatureScope.ANNOUNCEMENTS, PermissionAction.VIEW)
    if err:
        return err
    return json_private([a.to_dict() for a in wiring.get_repo().list_announcements()])


@announcements_router.post("/api/admin/announcements")
async def create_announcement(request: Request, payload: AnnouncementCreate):
    user, err = require_permission(request, FeatureScope.ANNOUNCEMENTS, PermissionAction.CREATE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        ann = wiring.get_repo().create_announcement(
            title=payload.title,
            content=payload.content,
            author_id=str(user.get("id")),
            author_name=user.get("name"),
        )
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    return json_private(ann.to_dict(), status_code=201)


@announcements_router.patch("/api/admin/announcements/{announcement_id}")
async def update_announcement(request: Request, announcement_id: str, payload: AnnouncementUpdate):
    """Title/content only; author and timestamp are immutable."""
    _user, err = require_permission(request, FeatureScope.ANNOUNCEMENTS, PermissionAction.EDIT)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        ann = wiring.get_repo().update_announcement(announcement_id, payload.model_dump(mode="python", exclude_unset=True))
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    if ann is None:
        return private_error({"error": "not_found"}, status_code=404)
    return json_private(ann.to_dict())


@announcements_router.delete("/api/admin/announcements/{announcement_id}")
async def delete_announcement(request: Request, announcement_id: str):
    _user, err = require_permission(request, FeatureScope.ANNOUNCEMENTS, PermissionAction.DELETE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    if not wiring.get_repo().delete_announcement(announcement_id):
        return private_error({"error": "not_found"}, status_code=404)
    return Response(status_code=204, headers={"Cache-Control": "private, no-store"})
