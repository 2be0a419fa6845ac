# Overview: Flask API routes for product categories.

from flask import Blueprint, request, jsonify, current_app

from ..services import category_service
from ..errors import error_response
from ..validation import ValidationError
from ..decorators import require_auth, require_permission

categories_bp = Blueprint("categories", __name__, url_prefix="/api/v1/categories")


@categories_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_categories_route():
    return jsonify({"categories": category_service.list_categories()}), 200


@categories_bp.post("")
@require_auth
@require_permission("MANAGE_CATEGORIES")
def create_category_route():
    data = request.get_json(silent=True) or {}
    try:
        result = category_service.create_category(data.get("name"))
        return jsonify(result), 201
    except ValidationError as e:
        return error_response(e)


@categories_bp.delete("/<name>")
@require_auth
@require_permission("MANAGE_CATEGORIES")
def delete_category_route(name: str):
    """Products in the category keep existing with a blank category."""
    try:
        updated = category_service.delete_category(name)
        return jsonify({"ok": True, "products_updated": updated}), 200
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<name>/rename")
@require_auth
@require_permission("MANAGE_CATEGORIES")
def rename_category_route(name: str):
    """Request body: {"new_name": "Snacks"}"""
    data = request.get_json(silent=True) or {}
    try:
        updated = category_service.rename_category(name, data.get("new_name"))
        return jsonify({"ok": True, "category": data.get("new_name", "").strip(), "products_updated": updated}), 200
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to rename category")
        return jsonify({"error": "Internal server error"}), 500
