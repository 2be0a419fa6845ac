# Overview: Flask API routes for customer sectors.

from flask import Blueprint, request, jsonify, current_app

from ..services import sector_service
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission

sectors_bp = Blueprint("sectors", __name__, url_prefix="/api/v1/sectors")


@sectors_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_sectors_route():
    sectors = sector_service.list_sectors()
    return jsonify({"sectors": [s.to_dict() for s in sectors]}), 200


@sectors_bp.post("")
@require_auth
@require_permission("MANAGE_SECTORS")
def create_sector_route():
    """Request body: {"name": "Wholesale", "discount_rate": 15, "description": "..."}"""
    payload = request.get_json(silent=True) or {}
    try:
        patch = sector_service.parse_sector_payload(payload, partial=False)
        sector = sector_service.create_sector(patch=patch)
        return jsonify(sector.to_dict()), 201
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sector")
        return jsonify({"error": "Internal server error"}), 500


@sectors_bp.put("/<int:sector_id>")
@require_auth
@require_permission("MANAGE_SECTORS")
def update_sector_route(sector_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = sector_service.parse_sector_payload(payload, partial=True)
        sector = sector_service.update_sector(sector_id, patch=patch)
        return jsonify(sector.to_dict()), 200
    except (POSError, ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sector")
        return jsonify({"error": "Internal server error"}), 500


@sectors_bp.delete("/<int:sector_id>")
@require_auth
@require_permission("MANAGE_SECTORS")
def delete_sector_route(sector_id: int):
    try:
        sector_service.delete_sector(sector_id)
        return jsonify({"ok": True}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sector")
        return jsonify({"error": "Internal server error"}), 500
