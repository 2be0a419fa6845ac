# Overview: Flask API routes for products, costs, discounts and quotes.

# backend/posbackend/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS (costs/quotes: VIEW_COSTS)
- Write operations require MANAGE_PRODUCTS / MANAGE_COSTS / MANAGE_DISCOUNTS
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..services import products_service, cost_service, discount_service, pricing_service
from ..services.price_history_service import list_price_history
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError, coerce_float, coerce_int
from ..decorators import require_auth, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/v1")


@products_bp.get("/products")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products_route():
    """
    Active products with their current cost.

    Query params:
    - category: exact category name
    - search: substring of name, Chinese name, barcode or SKU
    """
    try:
        products = products_service.list_products(
            category=request.args.get("category"),
            search=request.args.get("search"),
        )
        return jsonify({"products": products}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify(products_service.product_with_pricing(product, include_discounts=True)), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/products")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = products_service.parse_product_payload(payload, partial=False)
        created = products_service.create_product(patch=patch)
        return jsonify(created.to_dict()), 201
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = products_service.parse_product_payload(payload, partial=True)
        updated = products_service.update_product(product_id, patch=patch)
        return jsonify(updated.to_dict()), 200
    except (POSError, ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Soft delete; orders keep referencing the product."""
    try:
        products_service.delete_product(product_id)
        return jsonify({"ok": True}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# COSTS
# =============================================================================

@products_bp.post("/products/<int:product_id>/cost")
@require_auth
@require_permission("MANAGE_COSTS")
def set_cost_route(product_id: int):
    """
    Calculate and activate a new cost version from the full build-up inputs.

    Request body: exchange_rate (required), purchasing_cost_hkd,
    purchasing_cost_buffer_percent, unit_weight_g, weight_g,
    weight_buffer_percent, freight_rate_hkd_per_kg, freight_buffer_hkd,
    import_duty_percent, packaging_gbp, direct_retail_online_store_price_gbp
    """
    try:
        inputs = cost_service.parse_cost_inputs(request.get_json(silent=True) or {})
        cost = cost_service.set_product_cost(product_id, inputs, user_id=g.current_user.id)
        return jsonify(cost.to_dict()), 201
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set product cost")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/products/<int:product_id>/cost")
@require_auth
@require_permission("MANAGE_COSTS")
def update_cost_simple_route(product_id: int):
    """Quick edit of wholesale cost and/or retail price; still a new version."""
    data = request.get_json(silent=True) or {}
    try:
        wholesale = data.get("wholesale_cost_gbp")
        retail = data.get("direct_retail_online_store_price_gbp")
        cost = cost_service.update_product_cost_simple(
            product_id,
            wholesale_cost_gbp=coerce_float(wholesale, "wholesale_cost_gbp") if wholesale is not None else None,
            direct_retail_online_store_price_gbp=(
                coerce_float(retail, "direct_retail_online_store_price_gbp") if retail is not None else None
            ),
            user_id=g.current_user.id,
        )
        return jsonify(cost.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product cost")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>/costs")
@require_auth
@require_permission("VIEW_COSTS")
def list_costs_route(product_id: int):
    try:
        products_service.get_product(product_id)
        history = cost_service.list_cost_history(product_id)
        return jsonify({"costs": [c.to_dict() for c in history]}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list product costs")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>/price-history")
@require_auth
@require_permission("VIEW_PRICE_HISTORY")
def price_history_route(product_id: int):
    """
    Query params:
    - sector_id: only rows for this sector
    - limit: max rows (default 100)
    """
    sector_id = request.args.get("sector_id", type=int)
    limit = request.args.get("limit", default=100, type=int)

    try:
        products_service.get_product(product_id)
        rows = list_price_history(product_id, sector_id=sector_id, limit=max(1, min(limit, 1000)))
        return jsonify({"history": [r.to_dict() for r in rows]}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list price history")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# DISCOUNTS
# =============================================================================

@products_bp.post("/products/<int:product_id>/discounts/<int:sector_id>")
@require_auth
@require_permission("MANAGE_DISCOUNTS")
def set_discount_route(product_id: int, sector_id: int):
    """Request body: {"discount_percent": 10}"""
    data = request.get_json(silent=True) or {}
    try:
        if data.get("discount_percent") is None:
            raise ValidationError("Missing required fields: discount_percent")
        percent = coerce_float(data["discount_percent"], "discount_percent")
        discount = discount_service.set_product_discount(
            product_id, sector_id, percent, user_id=g.current_user.id
        )
        return jsonify(discount.to_dict()), 201
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set product discount")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>/discounts")
@require_auth
@require_permission("VIEW_COSTS")
def list_discounts_route(product_id: int):
    try:
        products_service.get_product(product_id)
        discounts = discount_service.list_active_discounts(product_id)
        return jsonify({"discounts": [d.to_dict() for d in discounts]}), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list product discounts")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/pricing/quote")
@require_auth
@require_permission("VIEW_COSTS")
def quote_route():
    """
    Price a basket without creating an order.

    Request body:
    {
        "sector_id": 2,                                   // optional
        "items": [{"product_id": 1, "quantity": 3}]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        lines = pricing_service.parse_lines(data.get("items"))
        sector_id = coerce_int(data["sector_id"], "sector_id") if data.get("sector_id") is not None else None
        quote = pricing_service.quote_order(lines, sector_id=sector_id)
        return jsonify(quote.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to quote order")
        return jsonify({"error": "Internal server error"}), 500
