# Overview: Service-layer capability checks; the only reader of ROLE_CAPABILITIES.

"""
Permission Checking and Security Event Logging

DESIGN PRINCIPLES:
- Fail closed: unknown roles and inactive users have no capabilities
- Log denials only: granted checks are not written anywhere
- Denials land in the audit log as action "permission_denied"
"""

from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import ROLE_CAPABILITIES, validate_permission_code
from .audit_service import ACTION_PERMISSION_DENIED, record_audit


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    reason: str,
    resource: str | None = None,
    action: str | None = None,
) -> None:
    """
    Record a denied access attempt and commit it on its own.

    The denied request never writes anything else, so committing here does
    not publish partial work.
    """
    outcome = record_audit(
        action=ACTION_PERMISSION_DENIED,
        entity_type="user",
        entity_id=user_id,
        user_id=user_id,
        changes={"resource": resource, "required": action, "reason": reason},
    )
    if outcome.is_applied:
        db.session.commit()
    current_app.logger.info("Permission denied for user %s on %s: %s", user_id, resource, reason)


def get_user_permissions(user: User) -> frozenset[str]:
    """Capability codes granted by the user's role."""
    if user is None or not user.is_active:
        return frozenset()
    return ROLE_CAPABILITIES.get(user.role, frozenset())


def user_has_permission(user: User, permission_code: str) -> bool:
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown capability code: {permission_code}")
    return permission_code in get_user_permissions(user)


def require_permission(user: User, permission_code: str, resource: str | None = None) -> None:
    """
    Raise PermissionDeniedError (after logging) if the user lacks the capability.

    Usage:
        require_permission(g.current_user, "CREATE_ORDER", resource=request.path)
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id if user else None,
        reason=f"Missing permission: {permission_code}",
        resource=resource,
        action=permission_code,
    )
    raise PermissionDeniedError(f"Permission denied: {permission_code}")
