# Overview: Flask API routes for stores; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services.store_service import create_store, list_stores
from ..errors import error_response
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission

stores_bp = Blueprint("stores", __name__, url_prefix="/api/v1/stores")


@stores_bp.get("")
@require_auth
@require_permission("VIEW_STORES")
def list_stores_route():
    """Query params: include_inactive=true to list closed stores too."""
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    stores = list_stores(active_only=not include_inactive)
    return jsonify({"stores": [s.to_dict() for s in stores]}), 200


@stores_bp.post("")
@require_auth
@require_permission("MANAGE_STORES")
def create_store_route():
    data = request.get_json(silent=True) or {}
    try:
        store = create_store(data.get("name"), data.get("address"))
        return jsonify(store.to_dict()), 201
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500
