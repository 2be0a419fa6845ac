# Overview: Flask API routes for currency rates and the provider sync.

# backend/posbackend/routes/currency.py
"""
Exchange rates, stored as units of a currency per 1 GBP.

Reading rates only needs VIEW_COSTS (cost entry screens use them);
everything else needs MANAGE_CURRENCY.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import currency_service
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission
from posbackend.time_utils import to_utc_z

currency_bp = Blueprint("currency", __name__, url_prefix="/api/v1/currency-rates")


@currency_bp.get("")
@require_auth
@require_permission("VIEW_COSTS")
def list_rates_route():
    """Pinned rates first, then alphabetical."""
    return jsonify({"rates": [r.to_dict() for r in currency_service.list_rates()]}), 200


@currency_bp.get("/<code>")
@require_auth
@require_permission("VIEW_COSTS")
def get_rate_route(code: str):
    try:
        return jsonify(currency_service.get_rate(code).to_dict()), 200
    except POSError as e:
        return error_response(e)


@currency_bp.post("")
@require_auth
@require_permission("MANAGE_CURRENCY")
def create_rate_route():
    """Request body: {"currency_code": "HKD", "rate_to_gbp": 9.85, "is_pinned": false}"""
    try:
        data = currency_service.parse_rate_payload(request.get_json(silent=True) or {}, creating=True)
        rate = currency_service.create_rate(
            data["currency_code"], data["rate_to_gbp"], data.get("is_pinned", False)
        )
        return jsonify(rate.to_dict()), 201
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create currency rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_bp.put("/<code>")
@require_auth
@require_permission("MANAGE_CURRENCY")
def update_rate_route(code: str):
    """Request body: {"rate_to_gbp": 9.9, "is_pinned": true}; marks the rate as manual."""
    try:
        data = currency_service.parse_rate_payload(request.get_json(silent=True) or {}, creating=False)
        rate = currency_service.update_rate(code, data["rate_to_gbp"], data.get("is_pinned"))
        return jsonify(rate.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update currency rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_bp.put("/<code>/pin")
@require_auth
@require_permission("MANAGE_CURRENCY")
def pin_rate_route(code: str):
    """Request body: {"is_pinned": true}; pinned manual rates survive a sync."""
    data = request.get_json(silent=True) or {}
    if data.get("is_pinned") is None:
        return jsonify({"error": "Missing required fields: is_pinned"}), 400
    try:
        rate = currency_service.set_pinned(code, bool(data["is_pinned"]))
        return jsonify(rate.to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to pin currency rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_bp.delete("/<code>")
@require_auth
@require_permission("MANAGE_CURRENCY")
def delete_rate_route(code: str):
    try:
        currency_service.delete_rate(code)
        return jsonify({"ok": True}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete currency rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_bp.post("/sync")
@require_auth
@require_permission("MANAGE_CURRENCY")
def sync_rates_route():
    """Pull the latest rates from the provider; 502 when it cannot be reached."""
    try:
        result = currency_service.sync_rates()
        result["sync_date"] = to_utc_z(result["sync_date"])
        return jsonify(result), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sync currency rates")
        return jsonify({"error": "Internal server error"}), 500
