"""
RFQ API: public submission and the admin inbox.

Behavior:
    - `POST /api/rfqs` is public. It stores the request with status `New` and
      answers 201 with the submission id and a confirmation message. The
      message falls back to fixed text when the AI adapter is unavailable.
    - A storage failure answers 502; the customer is asked to retry.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from backend.freight.models import ValidationError
from backend.freight.rfq import RfqSubmissionError, submit_rfq
from backend.identity_access.domain import FeatureScope, PermissionAction
from backend.web import wiring
from backend.web.routes.security import (
    csrf_guard,
    json_private,
    private_error,
    require_permission,
    validation_error,
)


rfqs_router = APIRouter(tags=["RFQs"])
logger = logging.getLogger("freightwise.web")


class RfqCreate(BaseModel):
    name: str = Field(max_length=200)
    email: str = Field(max_length=254)
    company: Optional[str] = Field(default=None, max_length=200)
    origin: str = Field(max_length=200)
    destination: str = Field(max_length=200)
    weight: Optional[Union[float, str]] = None
    freight_type: Optional[str] = ""
    message: Optional[str] = Field(default=None, max_length=5000)


class RfqStatusUpdate(BaseModel):
    status: str


@rfqs_router.post("/api/rfqs")
async def create_rfq(request: Request, payload: RfqCreate):
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        # The confirmation adapter may call a model server; keep the event loop free
        outcome = await asyncio.to_thread(
            submit_rfq, wiring.get_repo(), wiring.get_confirmation_adapter(), payload.model_dump(mode="python")
        )
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    except RfqSubmissionError:
        logger.error("web.rfq.submit_failed")
        return private_error({"error": "rfq_submission_failed"}, status_code=502)
    return json_private(
        {"submission_id": outcome.submission_id, "message": outcome.message, "status": outcome.rfq.status.value},
        status_code=201,
    )


@rfqs_router.get("/api/admin/rfqs")
async def list_rfqs(request: Request):
    """Newest first."""
    _user, err = require_permission(request, FeatureScope.RFQS, PermissionAction.VIEW)
    if err:
        return err
    return json_private([r.to_dict() for r in wiring.get_repo().list_rfqs()])


@rfqs_router.patch("/api/admin/rfqs/{rfq_id}")
async def update_rfq_status(request: Request, rfq_id: str, payload: RfqStatusUpdate):
    """Move an RFQ through New -> Contacted -> Quoted -> Closed (any order)."""
    _user, err = require_permission(request, FeatureScope.RFQS, PermissionAction.EDIT)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        rfq = wiring.get_repo().update_rfq_status(rfq_id, payload.status)
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    if rfq is None:
        return private_error({"error": "not_found"}, status_code=404)
    return json_private(rfq.to_dict())
