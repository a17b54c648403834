"""
Identity domain: roles, feature scopes, permission actions and defaults.

Why:
- Centralize the permission vocabulary so the web guards, the user service
  and the persistence adapters agree on one set of names.
- Keep the rules pure (no FastAPI, no DB) so they are trivially testable.

Permission shape:
    UserPermissions maps a FeatureScope to a frozenset of PermissionAction.
    A missing scope means "no permissions" for that area. Persistence stores
    the mapping as JSON text (`encode_permissions`) and decodes it on every
    read (`decode_permissions`).
"""

from __future__ import annotations

from enum import Enum
import json
from typing import Any, Dict, FrozenSet, Iterable, Mapping


class UserRole(str, Enum):
    AGENT = "agent"
    ADMIN = "admin"


class FeatureScope(str, Enum):
    PRICES = "prices"
    USERS = "users"
    ANNOUNCEMENTS = "announcements"
    RFQS = "rfqs"


class PermissionAction(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


UserPermissions = Dict[FeatureScope, FrozenSet[PermissionAction]]

ALLOWED_ROLES = frozenset(r.value for r in UserRole)
ALL_ACTIONS: FrozenSet[PermissionAction] = frozenset(PermissionAction)

# Agents may log new RFQs on behalf of customers; see DESIGN.md.
_AGENT_DEFAULTS: Mapping[FeatureScope, FrozenSet[PermissionAction]] = {
    FeatureScope.PRICES: frozenset({PermissionAction.VIEW}),
    FeatureScope.USERS: frozenset(),
    FeatureScope.ANNOUNCEMENTS: frozenset({PermissionAction.VIEW}),
    FeatureScope.RFQS: frozenset({PermissionAction.VIEW, PermissionAction.CREATE}),
}


def normalize_role(role: Any) -> UserRole:
    """Coerce a raw role value into `UserRole`; raises ValueError when unknown."""
    if isinstance(role, UserRole):
        return role
    return UserRole(str(role or "").strip().lower())


def default_permissions(role: UserRole | str) -> UserPermissions:
    """Return the default permission set for `role` (fresh mapping per call)."""
    if normalize_role(role) is UserRole.ADMIN:
        return {scope: ALL_ACTIONS for scope in FeatureScope}
    return dict(_AGENT_DEFAULTS)


def coerce_permissions(raw: Mapping[Any, Iterable[Any]] | None) -> UserPermissions:
    """Build a UserPermissions mapping from loosely typed input.

    Unknown scopes and actions are dropped so stale rows never grant
    capabilities the application no longer knows about. Duplicates collapse.
    """
    result: UserPermissions = {}
    if not raw:
        return result
    for key, actions in raw.items():
        try:
            scope = FeatureScope(getattr(key, "value", key))
        except ValueError:
            continue
        allowed = set()
        for action in actions or ():
            try:
                allowed.add(PermissionAction(getattr(action, "value", action)))
            except ValueError:
                continue
        result[scope] = frozenset(allowed)
    return result


def permissions_to_dict(perms: Mapping[FeatureScope, Iterable[PermissionAction]]) -> Dict[str, list[str]]:
    """JSON-friendly view with stable ordering (scope order, then action order)."""
    order = list(PermissionAction)
    out: Dict[str, list[str]] = {}
    for scope in FeatureScope:
        if scope not in perms:
            continue
        actions = sorted(perms[scope], key=order.index)
        out[scope.value] = [a.value for a in actions]
    return out


def encode_permissions(perms: Mapping[FeatureScope, Iterable[PermissionAction]]) -> str:
    return json.dumps(permissions_to_dict(perms))


def decode_permissions(raw: Any) -> UserPermissions:
    """Decode stored permissions (JSON text or an already-parsed mapping)."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        raise ValueError("permissions must decode to a mapping")
    return coerce_permissions(raw)


def has_permission(user: Any, scope: FeatureScope | str, action: PermissionAction | str) -> bool:
    """True iff the user's permissions for `scope` contain `action`.

    Accepts either a `User` record (attribute access) or the request-scoped
    user dict exposed by the auth middleware. Missing user or scope -> False.
    """
    if user is None:
        return False
    perms = user.get("permissions") if isinstance(user, Mapping) else getattr(user, "permissions", None)
    if not perms:
        return False
    try:
        scope_key = FeatureScope(getattr(scope, "value", scope))
        action_key = PermissionAction(getattr(action, "value", action))
    except ValueError:
        return False
    granted = perms.get(scope_key)
    if granted is None:
        granted = perms.get(scope_key.value)
    if not granted:
        return False
    return action_key in granted or action_key.value in granted


__all__ = [
    "UserRole",
    "FeatureScope",
    "PermissionAction",
    "UserPermissions",
    "ALLOWED_ROLES",
    "ALL_ACTIONS",
    "normalize_role",
    "default_permissions",
    "coerce_permissions",
    "permissions_to_dict",
    "encode_permissions",
    "decode_permissions",
    "has_permission",
]
