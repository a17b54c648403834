"""
Shared authentication utilities.

Why:
    The login route, the logout route and the middleware must agree on the
    session cookie name and flags. Keeping them in one pure helper avoids drift.

Design:
    The helper accepts an environment string so callers stay explicit about
    where settings come from, but flags are production-grade everywhere.
"""

from __future__ import annotations

SESSION_COOKIE_NAME = "fw_session"


def cookie_opts(environment: str) -> dict:
    """Return hardened session cookie flags (dev = prod).

    Returns a mapping with keys:
      - httponly: True
      - secure: True
      - samesite: "lax"  # cookie still sent on top-level navigation to /{lang}/...
      - path: "/"
    """
    return {"httponly": True, "secure": True, "samesite": "lax", "path": "/"}


SESSION_TTL_SECONDS = 8 * 3600


def set_session_cookie(response, value: str, *, environment: str = "dev", max_age: int | None = SESSION_TTL_SECONDS) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(key=SESSION_COOKIE_NAME, value=value, max_age=max_age, **opts)


def clear_session_cookie(response, *, environment: str = "dev") -> None:
    opts = cookie_opts(environment)
    response.delete_cookie(SESSION_COOKIE_NAME, path=opts["path"], secure=opts["secure"], httponly=opts["httponly"], samesite=opts["samesite"])
