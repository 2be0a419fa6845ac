# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/posbackend/routes/auth.py
"""
Authentication API routes

- Password login for back-office staff
- PIN login for tills (optionally bound to a registered device)
- Logout revokes the bearer token server-side
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services import device_service
from ..services.stock_service import last_stocktake_at
from ..decorators import require_auth, bearer_token
from ..errors import error_response
from ..validation import ValidationError
from posbackend.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _session_payload(user, token, session, message):
    return {
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with username (or email) and password.

    Returns user info and a session token; the token goes in the
    Authorization header of every protected route.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify(_session_payload(user, token, session, "Login successful")), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/pin-login")
def pin_login_route():
    """
    Till login with username + PIN.

    Request body:
    {
        "username": "till1",
        "pin": "1234",
        "device_code": "ABC123"   // optional, must be an active device
    }

    When a device code is given the response also carries the device and
    the time of its store's last day-start stocktake.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        pin = data.get("pin")
        raw_device_code = data.get("device_code")

        if not all([username, pin]):
            return jsonify({"error": "username and pin required"}), 400

        device = None
        if raw_device_code:
            try:
                device = device_service.find_device(raw_device_code)
            except ValidationError as e:
                return error_response(e)
            if device is None:
                return jsonify({"error": "Unknown or inactive device"}), 401

        user = auth_service.authenticate_pin(username, str(pin))
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
            device_code=device.device_code if device else None,
        )
        payload = _session_payload(user, token, session, "Login successful")
        payload["device"] = device.to_dict() if device else None
        payload["last_stocktake_at"] = to_utc_z(last_stocktake_at(device.store_id)) if device else None
        return jsonify(payload), 200

    except Exception:
        current_app.logger.exception("Failed to login user by PIN")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token (logout)."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with capability codes, for UI filtering."""
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(context.user)),
        "device_code": context.device_code,
    }), 200
