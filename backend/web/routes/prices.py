"""
Price API: public and internal search, admin CRUD and CSV import.

Permissions:
    - `GET /api/prices/public` is open to anonymous visitors and only ever
      returns `public` prices.
    - Internal search and every admin operation require the matching
      `prices:<action>` permission.
"""
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from backend.freight.models import PriceType, ValidationError
from backend.identity_access.domain import FeatureScope, PermissionAction
from backend.web import wiring
from backend.web.routes.security import (
    csrf_guard,
    json_private,
    private_error,
    require_permission,
    validation_error,
)


prices_router = APIRouter(tags=["Prices"])

MAX_IMPORT_BYTES = 1_000_000


class PriceFields(BaseModel):
    """Create/update payload; the domain validator enforces the field rules."""

    origin: Optional[str] = Field(default=None, max_length=200)
    destination: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[Union[float, str]] = None
    currency: Optional[str] = Field(default=None, max_length=8)
    type: Optional[str] = None
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    carrier: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=2000)


def _search(price_type: PriceType, origin: Optional[str], destination: Optional[str]) -> Response:
    prices = wiring.get_repo().search_prices(price_type=price_type, origin=origin, destination=destination)
    return json_private([p.to_dict() for p in prices])


@prices_router.get("/api/prices/public")
async def search_public_prices(origin: Optional[str] = None, destination: Optional[str] = None):
    """Public rates ordered by amount; origin/destination match case-insensitive substrings."""
    return _search(PriceType.PUBLIC, origin, destination)


@prices_router.get("/api/prices/internal")
async def search_internal_prices(request: Request, origin: Optional[str] = None, destination: Optional[str] = None):
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.VIEW)
    if err:
        return err
    return _search(PriceType.INTERNAL, origin, destination)


@prices_router.get("/api/admin/prices")
async def list_prices(request: Request):
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.VIEW)
    if err:
        return err
    return json_private([p.to_dict() for p in wiring.get_repo().list_all_prices()])


@prices_router.post("/api/admin/prices")
async def create_price(request: Request, payload: PriceFields):
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.CREATE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        price = wiring.get_repo().create_price(payload.model_dump(mode="python"))
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    return json_private(price.to_dict(), status_code=201)


@prices_router.patch("/api/admin/prices/{price_id}")
async def update_price(request: Request, price_id: str, payload: PriceFields):
    """Partial update; only fields present in the body change."""
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.EDIT)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    try:
        price = wiring.get_repo().update_price(price_id, payload.model_dump(mode="python", exclude_unset=True))
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    if price is None:
        return private_error({"error": "not_found"}, status_code=404)
    return json_private(price.to_dict())


@prices_router.delete("/api/admin/prices/{price_id}")
async def delete_price(request: Request, price_id: str):
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.DELETE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    if not wiring.get_repo().delete_price(price_id):
        return private_error({"error": "not_found"}, status_code=404)
    return Response(status_code=204, headers={"Cache-Control": "private, no-store"})


@prices_router.post("/api/prices/import")
async def import_prices(request: Request):
    """Import a CSV price sheet sent as the raw request body.

    Behavior:
        - 201 `{"imported": n, "prices": [...]}` when every row is valid.
        - 400 with `field` = `row N:<column>` for the first bad row; nothing
          is stored in that case.
        - 413 when the body exceeds MAX_IMPORT_BYTES.
    """
    _user, err = require_permission(request, FeatureScope.PRICES, PermissionAction.CREATE)
    if err:
        return err
    csrf = csrf_guard(request)
    if csrf:
        return csrf
    body = await request.body()
    if len(body) > MAX_IMPORT_BYTES:
        return private_error({"error": "payload_too_large"}, status_code=413)
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        return validation_error("file", "invalid_encoding")
    try:
        prices = wiring.get_repo().import_prices_csv(text)
    except ValidationError as exc:
        return validation_error(exc.field, exc.code)
    return json_private({"imported": len(prices), "prices": [p.to_dict() for p in prices]}, status_code=201)
