"FreightWise web application"
from __future__ import annotations

from pathlib import Path
import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from backend.web import wiring
from backend.web.auth_utils import SESSION_COOKIE_NAME
from backend.web.config import ensure_secure_config_on_startup, load_dotenv_if_enabled
from backend.web.locale import is_excluded_path, locale_of_path, locale_redirect

load_dotenv_if_enabled()
# Fail fast on insecure production configuration
ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------

class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return os.getenv("FREIGHTWISE_ENV", "dev").lower()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logger = logging.getLogger("freightwise.web")
SETTINGS = AuthSettings()

app = FastAPI(title="FreightWise", description="Freight rates, quotes and RFQ management", version="0.1.0")

# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

from backend.web.routes.announcements import announcements_router  # noqa: E402
from backend.web.routes.auth import auth_router  # noqa: E402
from backend.web.routes.pages import pages_router  # noqa: E402
from backend.web.routes.prices import prices_router  # noqa: E402
from backend.web.routes.rfqs import rfqs_router  # noqa: E402
from backend.web.routes.users import users_router  # noqa: E402

# --- Auth Helpers & Middleware --------------------------------------------------

def _is_public_path(path: str) -> bool:
    return path.startswith("/static/") or path in ("/health", "/favicon.ico")


def _is_dashboard_page(path: str) -> bool:
    loc = locale_of_path(path)
    if loc is None:
        return False
    rest = path[len(loc.value) + 1:]
    return rest == "/dashboard" or rest.startswith("/dashboard/")


def _session_user(request: Request) -> Optional[Dict[str, Any]]:
    """Resolve the session cookie into the request-scoped user dict.

    The user record is re-read on every request so role and permission
    changes apply immediately; sessions of deleted users are dropped.
    """
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if not sid:
        return None
    sessions = wiring.get_session_store()
    rec = sessions.get(sid)
    if not rec:
        return None
    user = wiring.get_user_store().get(rec.user_id)
    if user is None:
        sessions.delete(sid)
        return None
    return user.to_public_dict()


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    request.state.user = None
    if _is_public_path(path):
        return await call_next(request)

    request.state.user = _session_user(request)
    if request.state.user is None:
        if path.startswith("/api/admin/"):
            return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={"Cache-Control": "private, no-store"})
        if _is_dashboard_page(path):
            loc = locale_of_path(path)
            return RedirectResponse(url=f"/{loc.value}/login", status_code=302)
    return await call_next(request)


# --- Locale Redirect Middleware -----------------------------------------------

@app.middleware("http")
async def locale_prefix_redirect(request: Request, call_next):
    """Redirect locale-less page paths to `/{locale}{path}` (307, query kept)."""
    path = request.url.path
    if is_excluded_path(path):
        return await call_next(request)
    decision = locale_redirect(path, request.headers)
    if not decision.is_redirect:
        return await call_next(request)
    target = quote(decision.location)
    if request.url.query:
        target = f"{target}?{request.url.query}"
    logger.debug("locale.redirect from=%s to=%s", path, decision.location)
    return RedirectResponse(
        url=target,
        status_code=307,
        headers={"Vary": "Accept-Language", "Cache-Control": "private, no-store"},
    )


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.environment == "prod":
        # No inline script or style in production.
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; "
            "form-action 'self'; frame-ancestors 'self';"
        )
    else:
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; "
            "form-action 'self'; frame-ancestors 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    # Same-origin checks fall back to Referer; keep it for same-origin requests.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# --- Routes ---------------------------------------------------------------------

@app.get("/health")
async def health():
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "no-store"})


app.include_router(auth_router)
app.include_router(prices_router)
app.include_router(announcements_router)
app.include_router(rfqs_router)
app.include_router(users_router)
# Page routes use a `/{lang}` catch segment; register them last.
app.include_router(pages_router)
