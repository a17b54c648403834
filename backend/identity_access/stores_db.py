"""
Postgres-backed user and session stores (psycopg3).

Design:
- Each call opens a short-lived connection; the database is the sole arbiter
  of atomicity (concurrent updates: last write wins).
- `permissions` is stored as JSON text and decoded on every read so callers
  always see the mapping structure.
- Email uniqueness is enforced by a unique index; violations surface as
  `EmailTakenError`.

Expected schema (see `backend/sql/schema.sql`):
    users(id uuid pk, email text unique, name text, password_hash text,
          role text, permissions text)
    app_sessions(session_id text pk, user_id text, expires_at timestamptz)
"""
from __future__ import annotations

import os
import secrets
import time
from typing import Any, List, Mapping, Optional, Tuple

import psycopg
from psycopg import errors as pg_errors

from backend.identity_access.domain import decode_permissions, encode_permissions, normalize_role
from backend.identity_access.stores import SessionRecord
from backend.identity_access.users import EmailTakenError, User


_USER_COLUMNS_SQL = "id::text, email, name, role, permissions, password_hash"

# Columns callers may change; maps service field -> SQL column
_UPDATE_COLUMNS = {
    "name": "name",
    "role": "role",
    "permissions": "permissions",
    "password_hash": "password_hash",
}


def _dsn() -> str:
    dsn = os.getenv("USERS_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not dsn:
        raise RuntimeError("Database DSN unavailable for DBUserStore")
    return dsn


def _row_to_user(row: Tuple) -> User:
    return User(
        id=row[0],
        email=row[1],
        name=row[2] or "",
        role=normalize_role(row[3]),
        permissions=decode_permissions(row[4]),
        password_hash=row[5],
    )


def _to_db_value(key: str, value: Any) -> Any:
    if key == "permissions":
        return encode_permissions(value)
    if key == "role":
        return getattr(value, "value", value)
    return value


class DBUserStore:
    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = dsn or _dsn()

    def get(self, user_id: str) -> Optional[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_USER_COLUMNS_SQL} from public.users where id::text = %s", (user_id,))
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_USER_COLUMNS_SQL} from public.users where email = %s",
                    ((email or "").strip().lower(),),
                )
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def list(self) -> List[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_USER_COLUMNS_SQL} from public.users order by name, email")
                rows = cur.fetchall() or []
        return [_row_to_user(r) for r in rows]

    def insert(self, user: User) -> User:
        try:
            with psycopg.connect(self._dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        insert into public.users (id, email, name, password_hash, role, permissions)
                        values (%s, %s, %s, %s, %s, %s)
                        returning {_USER_COLUMNS_SQL}
                        """,
                        (
                            user.id,
                            user.email,
                            user.name,
                            user.password_hash,
                            user.role.value,
                            encode_permissions(user.permissions),
                        ),
                    )
                    row = cur.fetchone()
                    conn.commit()
        except pg_errors.UniqueViolation:
            raise EmailTakenError() from None
        return _row_to_user(row)

    def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        set_clauses: list[str] = []
        values: list[Any] = []
        for key, value in changes.items():
            column = _UPDATE_COLUMNS.get(key)
            if column is None:
                raise ValueError(f"unsupported_column:{key}")
            set_clauses.append(f"{column} = %s")
            values.append(_to_db_value(key, value))
        if not set_clauses:
            return self.get(user_id)
        values.append(user_id)
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update public.users set {', '.join(set_clauses)} where id::text = %s returning {_USER_COLUMNS_SQL}",
                    tuple(values),
                )
                row = cur.fetchone()
                conn.commit()
        return _row_to_user(row) if row else None

    def delete(self, user_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.users where id::text = %s", (user_id,))
                deleted = cur.rowcount or 0
                conn.commit()
        return deleted > 0


class DBSessionStore:
    """Postgres-backed session store (`public.app_sessions`).

    Same interface as the in-memory `SessionStore`, so sessions survive
    restarts and are shared between workers. Only the opaque session id and
    the user id are stored; expired rows are purged on every `create`.
    """

    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = dsn or _dsn()

    def create(self, *, user_id: str, ttl_seconds: int = 3600) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        expires_at = int(time.time()) + ttl_seconds
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.app_sessions where expires_at <= now()")
                cur.execute(
                    "insert into public.app_sessions (session_id, user_id, expires_at) values (%s, %s, to_timestamp(%s))",
                    (sid, user_id, expires_at),
                )
            conn.commit()
        return SessionRecord(session_id=sid, user_id=user_id, expires_at=expires_at, ttl_seconds=ttl_seconds)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        if not session_id:
            return None
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select session_id, user_id, extract(epoch from expires_at)::bigint "
                    "from public.app_sessions where session_id = %s and expires_at > now()",
                    (session_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return SessionRecord(session_id=row[0], user_id=row[1], expires_at=int(row[2]))

    def delete(self, session_id: str) -> None:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.app_sessions where session_id = %s", (session_id,))
            conn.commit()

    def delete_for_user(self, user_id: str) -> None:
        """Drop every session of a deleted user."""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.app_sessions where user_id = %s", (user_id,))
            conn.commit()
