# Overview: Staff accounts; creation, profile updates, PIN and store assignment.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import ROLES, Store, User
from ..validation import ConflictError, ValidationError
from .auth_service import (
    PasswordValidationError,
    PinValidationError,
    hash_password,
    hash_pin,
)
from .session_service import revoke_all_user_sessions


def _validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def _resolve_stores(store_ids) -> list[Store]:
    if store_ids is None:
        return []
    if not isinstance(store_ids, list):
        raise ValidationError("store_ids must be a list")
    stores = []
    for store_id in store_ids:
        store = db.session.get(Store, store_id) if isinstance(store_id, int) else None
        if store is None:
            raise NotFound(f"Store {store_id} not found", details={"store_id": store_id})
        stores.append(store)
    return stores


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def create_user(
    *,
    username: str,
    password: str,
    role: str,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    pin: str | None = None,
    store_ids: list[int] | None = None,
) -> User:
    """
    Create a staff account.

    Raises ValidationError for a bad role, weak password or malformed PIN and
    ConflictError for a taken username.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    _validate_role(role)

    if db.session.query(User).filter(User.username == username).first():
        raise ConflictError("Username already exists")

    try:
        password_hash = hash_password(password or "")
        pin_hash = hash_pin(pin) if pin else None
    except (PasswordValidationError, PinValidationError) as exc:
        raise ValidationError(str(exc)) from exc

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=password_hash,
        pin_hash=pin_hash,
        role=role,
        is_active=True,
    )
    user.stores = _resolve_stores(store_ids)

    db.session.add(user)
    db.session.commit()
    return user


USER_UPDATABLE_FIELDS = {"email", "first_name", "last_name", "role", "is_active", "password"}


def update_user(user_id: int, payload: dict) -> User:
    """
    Partial update. Changing the password or deactivating the account
    revokes the user's open sessions.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(payload) - USER_UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    user = get_user(user_id)
    revoke_reason = None

    if "role" in payload:
        user.role = _validate_role(payload["role"])
    for field in ("email", "first_name", "last_name"):
        if field in payload:
            setattr(user, field, payload[field])
    if "is_active" in payload:
        user.is_active = bool(payload["is_active"])
        if not user.is_active:
            revoke_reason = "User account deactivated"
    if payload.get("password"):
        try:
            user.password_hash = hash_password(payload["password"])
        except PasswordValidationError as exc:
            raise ValidationError(str(exc)) from exc
        revoke_reason = revoke_reason or "Password changed"

    if revoke_reason:
        revoke_all_user_sessions(user.id, reason=revoke_reason, commit=False)
    db.session.commit()
    return user


def set_pin(user_id: int, pin: str | None) -> User:
    """Set or (with an empty value) clear the till PIN."""
    user = get_user(user_id)
    if pin:
        try:
            user.pin_hash = hash_pin(pin)
        except PinValidationError as exc:
            raise ValidationError(str(exc)) from exc
    else:
        user.pin_hash = None
    db.session.commit()
    return user


def assign_stores(user_id: int, store_ids: list[int]) -> User:
    """Replace the user's store assignments."""
    user = get_user(user_id)
    user.stores = _resolve_stores(store_ids)
    db.session.commit()
    return user
