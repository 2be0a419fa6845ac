# Overview: Flask API routes for POS devices (tills).

# backend/posbackend/routes/devices.py
"""
Device routes.

A till identifies itself by its device code before anyone logs in, so
registration and the user/product lookups are public. Moving a device
between stores and listing devices require a session.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import device_service
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError, coerce_int
from ..decorators import require_auth, require_permission

devices_bp = Blueprint("devices", __name__, url_prefix="/api/v1")


def _device_fields(data: dict) -> tuple[str, int, str | None]:
    if data.get("device_code") in (None, "") or data.get("store_id") is None:
        raise ValidationError("Missing required fields: device_code, store_id")
    return (
        str(data["device_code"]),
        coerce_int(data["store_id"], "store_id"),
        data.get("device_name"),
    )


@devices_bp.post("/device/register")
def register_device_route():
    """
    Request body: {"device_code": "ABC123", "store_id": 1, "device_name": "Front till"}

    409 when the code is already registered.
    """
    data = request.get_json(silent=True) or {}
    try:
        device_code, store_id, device_name = _device_fields(data)
        device = device_service.register_device(device_code, store_id, device_name)
        return jsonify(device.to_dict()), 201
    except (POSError, ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register device")
        return jsonify({"error": "Internal server error"}), 500


@devices_bp.get("/device/<code>/users")
def device_users_route(code: str):
    """Users a till may offer on its PIN login screen."""
    try:
        users = device_service.users_for_device(code)
        return jsonify({
            "users": [
                {"id": u.id, "username": u.username, "full_name": u.full_name, "role": u.role}
                for u in users
            ]
        }), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load device users")
        return jsonify({"error": "Internal server error"}), 500


@devices_bp.get("/device/<code>/products")
def device_products_route(code: str):
    try:
        return jsonify({"products": device_service.products_for_device(code)}), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load device products")
        return jsonify({"error": "Internal server error"}), 500


@devices_bp.put("/device/configure")
@require_auth
@require_permission("MANAGE_DEVICES")
def configure_device_route():
    """Create the device or move it to another store."""
    data = request.get_json(silent=True) or {}
    try:
        device_code, store_id, device_name = _device_fields(data)
        device, created = device_service.configure_device(device_code, store_id, device_name)
        return jsonify({"device": device.to_dict(), "created": created}), 201 if created else 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to configure device")
        return jsonify({"error": "Internal server error"}), 500


@devices_bp.get("/devices")
@require_auth
@require_permission("VIEW_DEVICES")
def list_devices_route():
    store_id = request.args.get("store_id", type=int)
    try:
        devices = device_service.list_devices(store_id)
        return jsonify({"devices": [d.to_dict() for d in devices]}), 200
    except POSError as e:
        return error_response(e)


@devices_bp.get("/devices/<int:device_id>")
@require_auth
@require_permission("VIEW_DEVICES")
def get_device_route(device_id: int):
    try:
        return jsonify(device_service.get_device(device_id).to_dict()), 200
    except POSError as e:
        return error_response(e)


@devices_bp.get("/stores/<int:store_id>/devices")
@require_auth
@require_permission("VIEW_DEVICES")
def store_devices_route(store_id: int):
    try:
        devices = device_service.list_devices(store_id)
        return jsonify({"store_id": store_id, "devices": [d.to_dict() for d in devices]}), 200
    except POSError as e:
        return error_response(e)
