# Overview: Flask API route for per-sector price catalogs.

from flask import Blueprint, jsonify, current_app

from ..services.catalog_service import generate_catalog
from ..errors import POSError, error_response
from ..decorators import require_auth, require_permission

catalogs_bp = Blueprint("catalogs", __name__, url_prefix="/api/v1/catalogs")


@catalogs_bp.get("/<int:sector_id>")
@require_auth
@require_permission("GENERATE_CATALOG")
def catalog_route(sector_id: int):
    """Retail prices with the sector's discounts applied, grouped by category."""
    try:
        return jsonify(generate_catalog(sector_id)), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to generate catalog")
        return jsonify({"error": "Internal server error"}), 500
