"""
Shared web security helpers for the API routers and page handlers.

Contains the same-origin check used for CSRF protection, the permission guard
and the private (no-store) JSON response helpers. Keeping a single
implementation avoids drift between routers.
"""
from __future__ import annotations

import os
from typing import Any, Optional
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse

from backend.identity_access.domain import FeatureScope, PermissionAction, has_permission


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _parse_server(request: Request) -> tuple[str, str, int]:
    """Scheme/host/port the client addressed; X-Forwarded-* only when trusted."""
    trust_proxy = (os.getenv("FREIGHTWISE_TRUST_PROXY", "false") or "").lower() == "true"
    if trust_proxy:
        proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0].strip()
        fwd_host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        scheme = (proto or request.url.scheme or "http").lower()
        if ":" in fwd_host:
            host, port_str = fwd_host.rsplit(":", 1)
            port = int(port_str) if port_str.isdigit() else _default_port(scheme)
        else:
            host = fwd_host or (request.url.hostname or "")
            port = int(request.url.port) if request.url.port else _default_port(scheme)
        fwd_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
        if fwd_port.isdigit():
            port = int(fwd_port)
        return scheme, host.lower(), port

    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    return scheme, host, port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    Proxy awareness: Only trust X-Forwarded-* when FREIGHTWISE_TRUST_PROXY=true.
    """
    server = _parse_server(request)
    claimed = request.headers.get("origin") or request.headers.get("referer")
    if not claimed:
        return True
    try:
        return _parse_origin(claimed) == server
    except ValueError:
        return False


def _strict_csrf() -> bool:
    env = (os.getenv("FREIGHTWISE_ENV", "dev") or "").lower()
    toggle = (os.getenv("STRICT_CSRF", "false") or "").lower() == "true"
    return env in {"prod", "production"} or toggle


def is_trusted_write(request: Request) -> bool:
    """True when a browser write may proceed.

    In production (or with STRICT_CSRF=true) an Origin or Referer header must
    be present and same-origin; elsewhere a missing header is tolerated.
    """
    if _strict_csrf():
        if not (request.headers.get("origin") or request.headers.get("referer")):
            return False
    return _is_same_origin(request)


def json_private(payload: Any, *, status_code: int = 200) -> JSONResponse:
    """JSONResponse with `Cache-Control: private, no-store`."""
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def private_error(payload: dict, *, status_code: int) -> JSONResponse:
    return json_private(payload, status_code=status_code)


def validation_error(field: str, code: str) -> JSONResponse:
    return private_error({"error": "bad_request", "detail": code, "field": field}, status_code=400)


def csrf_guard(request: Request) -> Optional[JSONResponse]:
    if not is_trusted_write(request):
        return private_error({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)
    return None


def current_user(request: Request) -> Optional[dict]:
    return getattr(request.state, "user", None)


def require_permission(
    request: Request, scope: FeatureScope, action: PermissionAction
) -> tuple[Optional[dict], Optional[JSONResponse]]:
    """Return (user, error_response) for an API guard.

    401 without a session, 403 when the user lacks `scope:action`.
    """
    user = current_user(request)
    if not user:
        return None, private_error({"error": "unauthenticated"}, status_code=401)
    if not has_permission(user, scope, action):
        return user, private_error({"error": "forbidden"}, status_code=403)
    return user, None


__all__ = [
    "csrf_guard",
    "current_user",
    "is_trusted_write",
    "json_private",
    "private_error",
    "require_permission",
    "validation_error",
    "_is_same_origin",
]
