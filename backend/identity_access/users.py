"""
User service: create, update, delete and authenticate agent/admin accounts.

Why:
    Keep account rules (default permissions, email immutability, the
    role-change permission reset) independent of FastAPI and of the storage
    technology. Every function receives the store handle explicitly.

Store contract (see `UserStoreProtocol`):
    get / get_by_email / list / insert / update / delete, returning `User`
    records with permissions already decoded. In-memory and Postgres
    implementations live in `stores.py` and `stores_db.py`.

Errors:
    - `ValidationError(field, code)` for malformed input (UI maps to field feedback).
    - `EmailTakenError` (a ValidationError) when the email is already in use.
    - Unknown ids are reported as `None`, never raised.
    - Storage errors propagate unmodified.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Protocol
from uuid import uuid4

from backend.identity_access.domain import (
    UserPermissions,
    UserRole,
    coerce_permissions,
    default_permissions,
    normalize_role,
    permissions_to_dict,
)
from backend.identity_access.passwords import hash_password, verify_password


logger = logging.getLogger("freightwise.identity_access")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_UPDATABLE_FIELDS = frozenset({"name", "role", "permissions", "password"})


class ValidationError(ValueError):
    """Input rejected by the user service; carries the offending field."""

    def __init__(self, field: str, code: str) -> None:
        super().__init__(f"{field}:{code}")
        self.field = field
        self.code = code


class EmailTakenError(ValidationError):
    def __init__(self) -> None:
        super().__init__("email", "email_taken")


@dataclass
class User:
    id: str
    email: str
    name: str
    role: UserRole
    permissions: UserPermissions = field(default_factory=dict)
    password_hash: Optional[str] = field(default=None, repr=False)

    def to_public_dict(self) -> Dict[str, Any]:
        """Client-facing shape; never includes the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "permissions": permissions_to_dict(self.permissions),
        }


class UserStoreProtocol(Protocol):
    def get(self, user_id: str) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def list(self) -> List[User]:
        ...

    def insert(self, user: User) -> User:
        ...

    def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        ...

    def delete(self, user_id: str) -> bool:
        ...


# --- Validation helpers ----------------------------------------------------------

def normalize_email(email: Any) -> str:
    value = str(email or "").strip().lower()
    if not value or len(value) > 254 or not _EMAIL_RE.match(value):
        raise ValidationError("email", "invalid_email")
    return value


def _validate_name(name: Any) -> str:
    value = str(name or "").strip()
    if len(value) < 2 or len(value) > 120:
        raise ValidationError("name", "invalid_name")
    return value


def _validate_password(password: Any) -> str:
    if not isinstance(password, str) or password == "":
        raise ValidationError("password", "invalid_password")
    return password


def _validate_role(role: Any) -> UserRole:
    try:
        return normalize_role(role)
    except ValueError:
        raise ValidationError("role", "invalid_role") from None


def _validate_permissions(raw: Any) -> UserPermissions:
    if not isinstance(raw, Mapping):
        raise ValidationError("permissions", "invalid_permissions")
    return coerce_permissions(raw)


# --- Operations ------------------------------------------------------------------

def create_user(store: UserStoreProtocol, data: Mapping[str, Any]) -> User:
    """Create and persist a user.

    Behavior:
        - Validates email/name/password/role.
        - Uses `default_permissions(role)` when `permissions` is absent or None.
        - Assigns a fresh uuid4 id and stores a PBKDF2 password hash.

    Raises:
        ValidationError / EmailTakenError on invalid or duplicate input.
    """
    email = normalize_email(data.get("email"))
    name = _validate_name(data.get("name"))
    password = _validate_password(data.get("password"))
    role = _validate_role(data.get("role"))
    raw_perms = data.get("permissions")
    permissions = default_permissions(role) if raw_perms is None else _validate_permissions(raw_perms)
    if store.get_by_email(email) is not None:
        raise EmailTakenError()
    user = User(
        id=str(uuid4()),
        email=email,
        name=name,
        role=role,
        permissions=permissions,
        password_hash=hash_password(password),
    )
    created = store.insert(user)
    logger.info("identity.user.created user_id=%s role=%s", created.id, created.role.value)
    return created


def update_user(store: UserStoreProtocol, user_id: str, updates: Mapping[str, Any]) -> Optional[User]:
    """Apply a partial update; returns None when the user does not exist.

    Rules:
        - `email` is immutable; its presence raises ValidationError(email, immutable).
        - When `role` changes and `permissions` is absent, permissions are reset
          to the new role's defaults (custom grants are dropped).
        - No recognised fields -> returns the current record unchanged.
    """
    if "email" in updates:
        raise ValidationError("email", "immutable")
    unknown = set(updates) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(sorted(unknown)[0], "unknown_field")

    changes: Dict[str, Any] = {}
    if updates.get("name") is not None:
        changes["name"] = _validate_name(updates["name"])
    if updates.get("role") is not None:
        role = _validate_role(updates["role"])
        changes["role"] = role
        if updates.get("permissions") is None:
            changes["permissions"] = default_permissions(role)
    if updates.get("permissions") is not None:
        changes["permissions"] = _validate_permissions(updates["permissions"])
    if updates.get("password") is not None:
        changes["password_hash"] = hash_password(_validate_password(updates["password"]))

    if not changes:
        return store.get(user_id)
    updated = store.update(user_id, changes)
    if updated is None:
        return None
    logger.info("identity.user.updated user_id=%s fields=%s", user_id, ",".join(sorted(changes)))
    return updated


def get_user(store: UserStoreProtocol, user_id: str) -> Optional[User]:
    return store.get(user_id)


def list_users(store: UserStoreProtocol) -> List[User]:
    return sorted(store.list(), key=lambda u: (u.name.lower(), u.email))


def delete_user(store: UserStoreProtocol, user_id: str) -> bool:
    deleted = store.delete(user_id)
    if deleted:
        logger.info("identity.user.deleted user_id=%s", user_id)
    return deleted


def authenticate(store: UserStoreProtocol, email: str, password: str) -> Optional[User]:
    """Return the user when the credentials match, otherwise None."""
    try:
        normalized = normalize_email(email)
    except ValidationError:
        return None
    user = store.get_by_email(normalized)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def with_changes(user: User, changes: Mapping[str, Any]) -> User:
    """Return a copy of `user` with `changes` applied (store helper)."""
    return replace(user, **dict(changes))


__all__ = [
    "User",
    "UserStoreProtocol",
    "ValidationError",
    "EmailTakenError",
    "normalize_email",
    "create_user",
    "update_user",
    "get_user",
    "list_users",
    "delete_user",
    "authenticate",
    "with_changes",
]
