"""
Composition root for the web layer: user store, sessions, freight repository
and the RFQ confirmation adapter.

Why:
    Route modules and middleware need the same store instances. Keeping the
    wiring in one module avoids import cycles between `main` and the routers
    and gives tests one place to swap implementations (`set_*`).

Behavior:
    - Postgres-backed stores (users, sessions, freight data) are used when
      DATABASE_URL is set and reachable; otherwise in-memory stores seeded
      with demo data are used.
    - Accessors build lazily so importing the app never touches the database.
    - The confirmation adapter module is chosen by `load_ai_config()`; a
      broken configuration leaves the RFQ flow on its fallback message.
"""
from __future__ import annotations

from importlib import import_module
import logging
import os
from typing import Optional

from backend.ai.config import load_ai_config
from backend.ai.ports import ConfirmationAdapterProtocol
from backend.freight.repo import FreightRepoProtocol, InMemoryFreightRepo
from backend.identity_access.domain import UserRole, default_permissions
from backend.identity_access.passwords import hash_password
from backend.identity_access.stores import SessionStore, SessionStoreProtocol, UserStore
from backend.identity_access.users import User, UserStoreProtocol


logger = logging.getLogger("freightwise.web")

_SESSION_STORE: Optional[SessionStoreProtocol] = None
_USER_STORE: Optional[UserStoreProtocol] = None
_FREIGHT_REPO: Optional[FreightRepoProtocol] = None
_CONFIRMATION_ADAPTER: Optional[ConfirmationAdapterProtocol] = None
_ADAPTER_RESOLVED = False

_DEMO_USERS = (
    ("1", "admin@freightwise.com", "Admin Freight", UserRole.ADMIN),
    ("2", "agent1@freightwise.com", "Alice Agent", UserRole.AGENT),
    ("3", "agent2@freightwise.com", "Bob Broker", UserRole.AGENT),
)


def seed_demo_users(store: UserStore, *, password: Optional[str] = None, iterations: int = 260_000) -> UserStore:
    """Insert the demo admin and agents (shared password) into `store`."""
    secret = password or os.getenv("FREIGHTWISE_DEMO_PASSWORD") or "freightwise-demo"
    for user_id, email, name, role in _DEMO_USERS:
        store.insert(
            User(
                id=user_id,
                email=email,
                name=name,
                role=role,
                permissions=default_permissions(role),
                password_hash=hash_password(secret, iterations=iterations),
            )
        )
    return store


def _database_reachable(dsn: str) -> bool:
    import psycopg

    try:
        with psycopg.connect(dsn, connect_timeout=3):
            return True
    except psycopg.Error as exc:
        logger.warning("Database unreachable (%s); using in-memory stores", exc.__class__.__name__)
        return False


def _database_dsn() -> Optional[str]:
    dsn = (os.getenv("DATABASE_URL") or "").strip()
    if dsn and _database_reachable(dsn):
        return dsn
    return None


def _build_default_user_store() -> UserStoreProtocol:
    dsn = _database_dsn()
    if dsn:
        from backend.identity_access.stores_db import DBUserStore

        return DBUserStore(dsn)
    return seed_demo_users(UserStore())


def _build_default_repo() -> FreightRepoProtocol:
    dsn = _database_dsn()
    if dsn:
        from backend.freight.repo_db import DBFreightRepo

        return DBFreightRepo(dsn)
    return InMemoryFreightRepo()


def _build_default_session_store() -> SessionStoreProtocol:
    dsn = _database_dsn()
    if dsn:
        from backend.identity_access.stores_db import DBSessionStore

        return DBSessionStore(dsn)
    return SessionStore()


def _build_default_adapter() -> Optional[ConfirmationAdapterProtocol]:
    try:
        cfg = load_ai_config()
        module = import_module(cfg.confirmation_adapter_path)
        return module.build()  # type: ignore[attr-defined]
    except (ValueError, ImportError, AttributeError) as exc:
        logger.warning("RFQ confirmation adapter unavailable (%s); using fallback messages", exc.__class__.__name__)
        return None


def get_user_store() -> UserStoreProtocol:
    global _USER_STORE
    if _USER_STORE is None:
        _USER_STORE = _build_default_user_store()
    return _USER_STORE


def set_user_store(store: Optional[UserStoreProtocol]) -> None:
    """Swap the user store (tests); None rebuilds the default lazily."""
    global _USER_STORE
    _USER_STORE = store


def get_repo() -> FreightRepoProtocol:
    global _FREIGHT_REPO
    if _FREIGHT_REPO is None:
        _FREIGHT_REPO = _build_default_repo()
    return _FREIGHT_REPO


def set_repo(repo: Optional[FreightRepoProtocol]) -> None:
    """Swap the freight repository (tests); None rebuilds the default lazily."""
    global _FREIGHT_REPO
    _FREIGHT_REPO = repo


def get_confirmation_adapter() -> Optional[ConfirmationAdapterProtocol]:
    global _CONFIRMATION_ADAPTER, _ADAPTER_RESOLVED
    if not _ADAPTER_RESOLVED:
        _CONFIRMATION_ADAPTER = _build_default_adapter()
        _ADAPTER_RESOLVED = True
    return _CONFIRMATION_ADAPTER


def set_confirmation_adapter(adapter: Optional[ConfirmationAdapterProtocol]) -> None:
    global _CONFIRMATION_ADAPTER, _ADAPTER_RESOLVED
    _CONFIRMATION_ADAPTER = adapter
    _ADAPTER_RESOLVED = True


def get_session_store() -> SessionStoreProtocol:
    global _SESSION_STORE
    if _SESSION_STORE is None:
        _SESSION_STORE = _build_default_session_store()
    return _SESSION_STORE


def set_session_store(store: Optional[SessionStoreProtocol]) -> None:
    """Swap the session store; None rebuilds the default lazily."""
    global _SESSION_STORE
    _SESSION_STORE = store


def reset_session_store() -> SessionStore:
    """Install a fresh in-memory session store (tests)."""
    global _SESSION_STORE
    store = SessionStore()
    _SESSION_STORE = store
    return store
