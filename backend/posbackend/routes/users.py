# Overview: Flask API routes for staff accounts.

# backend/posbackend/routes/users.py
"""
User administration routes.

SECURITY:
- Reads require VIEW_USERS
- Writes require MANAGE_USERS
- Password/PIN hashes never leave the server (see User.to_dict)
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import user_service
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in user_service.list_users()]}), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user_route(user_id: int):
    try:
        return jsonify(user_service.get_user(user_id).to_dict()), 200
    except POSError as e:
        return error_response(e)


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Request body:
    {
        "username": "till1",
        "password": "Str0ng!pass",
        "role": "pos_user",               // management | supervisor | pos_user
        "email": "...", "first_name": "...", "last_name": "...",
        "pin": "1234",                    // optional
        "store_ids": [1]                  // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role"),
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            pin=data.get("pin"),
            store_ids=data.get("store_ids"),
        )
        return jsonify(user.to_dict()), 201
    except (POSError, ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    """Partial update; deactivating or changing the password logs the user out everywhere."""
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.update_user(user_id, data)
        return jsonify(user.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/pin")
@require_auth
@require_permission("MANAGE_USERS")
def set_pin_route(user_id: int):
    """Request body: {"pin": "1234"}; an empty pin clears it."""
    data = request.get_json(silent=True) or {}
    try:
        pin = data.get("pin")
        user = user_service.set_pin(user_id, str(pin) if pin is not None else None)
        return jsonify(user.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set user PIN")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/stores")
@require_auth
@require_permission("MANAGE_USERS")
def assign_stores_route(user_id: int):
    """Request body: {"store_ids": [1, 2]}; replaces the current assignments."""
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.assign_stores(user_id, data.get("store_ids") or [])
        return jsonify(user.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign user stores")
        return jsonify({"error": "Internal server error"}), 500
