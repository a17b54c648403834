"""
User service rules against the in-memory store: creation defaults, email
uniqueness and immutability, the role-change permission reset, deletion and
authentication.
"""
from __future__ import annotations

import pytest

from backend.identity_access.domain import (
    FeatureScope,
    PermissionAction,
    UserRole,
    default_permissions,
    permissions_to_dict,
)
from backend.identity_access.stores import UserStore
from backend.identity_access.users import (
    EmailTakenError,
    ValidationError,
    authenticate,
    create_user,
    delete_user,
    get_user,
    list_users,
    update_user,
)


@pytest.fixture
def store() -> UserStore:
    return UserStore()


def _create(store: UserStore, **overrides):
    data = {"email": "carol@example.com", "name": "Carol Cargo", "password": "s3cret-pw", "role": "agent"}
    data.update(overrides)
    return create_user(store, data)


def test_create_user_applies_role_defaults_and_normalizes_email(store):
    user = _create(store, email="  Carol@Example.COM ")
    assert user.email == "carol@example.com"
    assert user.role is UserRole.AGENT
    assert user.permissions == default_permissions(UserRole.AGENT)
    assert user.password_hash and "s3cret-pw" not in user.password_hash
    assert get_user(store, user.id) == user


def test_create_user_keeps_explicit_permissions(store):
    user = _create(store, permissions={"users": ["view"]})
    assert permissions_to_dict(user.permissions) == {"users": ["view"]}


def test_public_dict_never_exposes_password_hash(store):
    public = _create(store).to_public_dict()
    assert set(public) == {"id", "email", "name", "role", "permissions"}


def test_duplicate_email_is_rejected_case_insensitively(store):
    _create(store)
    with pytest.raises(EmailTakenError) as exc:
        _create(store, email="CAROL@example.com", name="Other Carol")
    assert exc.value.field == "email"
    assert exc.value.code == "email_taken"


@pytest.mark.parametrize(
    "overrides, field, code",
    [
        ({"email": "not-an-email"}, "email", "invalid_email"),
        ({"name": "C"}, "name", "invalid_name"),
        ({"password": ""}, "password", "invalid_password"),
        ({"role": "owner"}, "role", "invalid_role"),
        ({"permissions": ["prices"]}, "permissions", "invalid_permissions"),
    ],
)
def test_create_user_validation_errors(store, overrides, field, code):
    with pytest.raises(ValidationError) as exc:
        _create(store, **overrides)
    assert (exc.value.field, exc.value.code) == (field, code)
    assert store.list() == []


def test_role_change_without_permissions_resets_to_new_defaults(store):
    user = _create(store, permissions={"users": ["view", "edit"]})
    updated = update_user(store, user.id, {"role": "admin"})
    assert updated.role is UserRole.ADMIN
    assert updated.permissions == default_permissions(UserRole.ADMIN)

    demoted = update_user(store, user.id, {"role": "agent"})
    assert demoted.permissions == default_permissions(UserRole.AGENT)


def test_role_change_with_permissions_keeps_the_given_permissions(store):
    user = _create(store)
    updated = update_user(store, user.id, {"role": "admin", "permissions": {"prices": ["view"]}})
    assert updated.role is UserRole.ADMIN
    assert updated.permissions == {FeatureScope.PRICES: frozenset({PermissionAction.VIEW})}


def test_name_and_password_updates(store):
    user = _create(store)
    updated = update_user(store, user.id, {"name": "Carol C.", "password": "new-password"})
    assert updated.name == "Carol C."
    assert authenticate(store, "carol@example.com", "new-password") is not None
    assert authenticate(store, "carol@example.com", "s3cret-pw") is None


def test_email_is_immutable(store):
    user = _create(store)
    with pytest.raises(ValidationError) as exc:
        update_user(store, user.id, {"email": "other@example.com"})
    assert exc.value.code == "immutable"
    assert get_user(store, user.id).email == "carol@example.com"


def test_unknown_update_fields_are_rejected(store):
    user = _create(store)
    with pytest.raises(ValidationError) as exc:
        update_user(store, user.id, {"is_superuser": True})
    assert (exc.value.field, exc.value.code) == ("is_superuser", "unknown_field")


def test_update_of_unknown_user_returns_none(store):
    assert update_user(store, "missing", {"name": "Nobody Here"}) is None


def test_empty_update_returns_current_record(store):
    user = _create(store)
    assert update_user(store, user.id, {}) == user


def test_delete_user(store):
    user = _create(store)
    assert delete_user(store, user.id) is True
    assert delete_user(store, user.id) is False
    assert get_user(store, user.id) is None


def test_list_users_sorted_by_name(store):
    _create(store, email="z@example.com", name="Zed Zulu")
    _create(store, email="a@example.com", name="anna Alpha")
    assert [u.name for u in list_users(store)] == ["anna Alpha", "Zed Zulu"]


@pytest.mark.parametrize(
    "email, password",
    [
        ("carol@example.com", "wrong"),
        ("unknown@example.com", "s3cret-pw"),
        ("not an email", "s3cret-pw"),
        ("carol@example.com", ""),
    ],
)
def test_authenticate_rejects_bad_credentials(store, email, password):
    _create(store)
    assert authenticate(store, email, password) is None


def test_authenticate_is_case_insensitive_on_email(store):
    user = _create(store)
    assert authenticate(store, "CAROL@example.com", "s3cret-pw") == user
