"""
In-memory stores for development and tests: SessionStore and UserStore.

Why: Sessions stay server-side behind an opaque cookie; the user record
(including permissions) is re-read on every request so permission edits take
effect immediately. For production, `stores_db.DBUserStore` and
`stores_db.DBSessionStore` persist users and sessions in Postgres.

Security: Cookies carry only an opaque session id. The session holds the user
id and nothing else.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol
import secrets
import time

from backend.identity_access.users import User, with_changes


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    user_id: str
    expires_at: Optional[int] = None
    ttl_seconds: int = 3600


class SessionStoreProtocol(Protocol):
    def create(self, *, user_id: str, ttl_seconds: int = 3600) -> SessionRecord:
        ...

    def get(self, session_id: str) -> Optional[SessionRecord]:
        ...

    def delete(self, session_id: str) -> None:
        ...

    def delete_for_user(self, user_id: str) -> None:
        ...


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(self, *, user_id: str, ttl_seconds: int = 3600) -> SessionRecord:
        self._purge_expired()
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(session_id=sid, user_id=user_id, expires_at=_now() + ttl_seconds, ttl_seconds=ttl_seconds)
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    def _purge_expired(self) -> None:
        now = _now()
        for sid in [s for s, rec in self._data.items() if rec.expires_at and rec.expires_at < now]:
            self._data.pop(sid, None)

    def delete_for_user(self, user_id: str) -> None:
        """Drop every session of a deleted user."""
        for sid in [s for s, rec in self._data.items() if rec.user_id == user_id]:
            self._data.pop(sid, None)


class UserStore:
    """Dict-backed user store keyed by id, with a unique email index."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        email = (email or "").strip().lower()
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def list(self) -> List[User]:
        return list(self._users.values())

    def insert(self, user: User) -> User:
        if user.id in self._users:
            raise ValueError("duplicate_id")
        self._users[user.id] = user
        return user

    def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        current = self._users.get(user_id)
        if current is None:
            return None
        updated = with_changes(current, changes)
        self._users[user_id] = updated
        return updated

    def delete(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None
