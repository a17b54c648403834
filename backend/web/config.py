"""
Configuration and startup security checks for FreightWise.

Why: Prevent accidental insecure deployments (placeholder secrets, plaintext
database connections, stub AI adapters) without burdening local development.

Permissions: The caller needs no special privileges. The functions read
environment variables and raise `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
import sys


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("FREIGHTWISE_ENV", "dev") or "dev").strip().lower()


def load_dotenv_if_enabled() -> bool:
    """Load `.env` into the process environment outside pytest.

    Disabled under pytest (tests control their environment explicitly) and
    when FREIGHTWISE_ENABLE_DOTENV is set to a false value. Existing variables
    are never overridden.
    """
    if "pytest" in sys.modules:
        return False
    flag = (os.getenv("FREIGHTWISE_ENABLE_DOTENV", "true") or "").strip().lower()
    if flag not in {"1", "true", "yes"}:
        return False
    from dotenv import load_dotenv

    return bool(load_dotenv(override=False))


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks:
    - DATABASE_URL must be set and must not explicitly disable TLS.
    - DEFAULT_LOCALE, when set, must be a supported locale (all environments).
    - AI_BACKEND must not be the stub adapter.
    """
    from backend.web.locale import SupportedLocale

    default_locale = (os.getenv("DEFAULT_LOCALE") or "").strip().lower()
    if default_locale and default_locale not in {loc.value for loc in SupportedLocale}:
        raise SystemExit(
            f"Refusing to start: DEFAULT_LOCALE={default_locale!r} is not a supported locale."
        )

    if not _is_prod_like(current_environment()):
        return  # dev/test remain permissive

    # 1) Postgres must be configured, with TLS not explicitly disabled
    dsn = os.getenv("DATABASE_URL", "")
    if not dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL is unset in production; in-memory stores would lose data."
        )
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    # 2) AI backend safety: stub adapters must never run in prod/stage.
    ai_backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if ai_backend == "stub":
        raise SystemExit(
            "Refusing to start: AI_BACKEND=stub is not allowed in production/staging. Configure a real adapter."
        )
