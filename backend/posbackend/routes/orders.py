# Overview: Flask API routes for orders; creation, status transitions, pickup and stats.

# backend/posbackend/routes/orders.py
"""
Order lifecycle routes.

pending -> paid -> completed, pending -> cancelled; pickup is keyed by the
order number printed on the receipt QR code.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service, device_service
from ..services.pricing_service import parse_lines
from ..errors import POSError, error_response
from ..validation import ValidationError, ConflictError, coerce_int
from ..decorators import require_auth, require_permission
from posbackend.time_utils import parse_day, to_utc_z

orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


def _resolve_store_id(data: dict) -> int:
    """Explicit store_id wins; a till session falls back to its device's store."""
    if data.get("store_id") is not None:
        return coerce_int(data["store_id"], "store_id")
    device_code = g.session_context.device_code
    if device_code:
        return device_service.require_active_device(device_code).store_id
    raise ValidationError("Missing required fields: store_id")


def _date_arg(name: str):
    try:
        return parse_day(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def create_order_route():
    """
    Request body:
    {
        "store_id": 1,                                    // optional on a till session
        "sector_id": 2,                                   // optional
        "items": [{"product_id": 1, "quantity": 3}]
    }

    Response includes stock_effects: one outcome per line, "skipped" when
    the store had no stock row for the product.
    """
    data = request.get_json(silent=True) or {}
    try:
        lines = parse_lines(data.get("items"))
        sector_id = data.get("sector_id")
        result = order_service.create_order(
            store_id=_resolve_store_id(data),
            user_id=g.current_user.id,
            lines=lines,
            sector_id=coerce_int(sector_id, "sector_id") if sector_id is not None else None,
            device_code=g.session_context.device_code,
        )
        return jsonify(result.to_dict()), 201
    except (POSError, ValidationError, ConflictError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_route():
    """
    Newest first.

    Query params:
    - store_id, user_id: int
    - status: pending | paid | completed | cancelled
    - start_date, end_date: YYYY-MM-DD (inclusive)
    - limit: default ORDER_LIST_DEFAULT_LIMIT, capped at ORDER_LIST_MAX_LIMIT
    """
    try:
        orders = order_service.list_orders(
            store_id=request.args.get("store_id", type=int),
            status=request.args.get("status"),
            user_id=request.args.get("user_id", type=int),
            start_date=_date_arg("start_date"),
            end_date=_date_arg("end_date"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"orders": [o.to_dict(include_items=False) for o in orders]}), 200
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/stats/revenue")
@require_auth
@require_permission("VIEW_ORDER_STATS")
def revenue_stats_route():
    """
    Daily revenue of paid and completed orders.

    Query params: days (default 30, max 365) or start_date + end_date; store_id
    """
    try:
        start, end = order_service.stats_window(
            days=request.args.get("days", type=int),
            start_date=_date_arg("start_date"),
            end_date=_date_arg("end_date"),
        )
        rows = order_service.daily_revenue_stats(
            start=start, end=end, store_id=request.args.get("store_id", type=int)
        )
        return jsonify({
            "start": to_utc_z(start),
            "end": to_utc_z(end),
            "total_revenue": sum(r["revenue"] for r in rows),
            "total_orders": sum(r["order_count"] for r in rows),
            "daily": rows,
        }), 200
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load revenue stats")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/stats/product-sales")
@require_auth
@require_permission("VIEW_ORDER_STATS")
def product_sales_stats_route():
    try:
        start, end = order_service.stats_window(
            days=request.args.get("days", type=int),
            start_date=_date_arg("start_date"),
            end_date=_date_arg("end_date"),
        )
        rows = order_service.daily_product_sales_stats(
            start=start, end=end, store_id=request.args.get("store_id", type=int)
        )
        return jsonify({"start": to_utc_z(start), "end": to_utc_z(end), "daily": rows}), 200
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load product sales stats")
        return jsonify({"error": "Internal server error"}), 500


def _check_code(data: dict, key: str) -> str | None:
    value = data.get(key)
    if not isinstance(value, str):
        value = request.args.get(key)
    return value or None


@orders_bp.put("/pickup/<order_number>")
@require_auth
@require_permission("COMPLETE_ORDER")
def pickup_route(order_number: str):
    """
    Hand over a paid order scanned at the counter.

    Request body (optional):
    {
        "invoice_check_code": "0421",
        "receipt_check_code": "9313"
    }
    The codes may also be sent as query parameters. Non-string values are
    ignored, and both codes must be present for them to be checked.
    """
    data = request.get_json(silent=True) or {}
    try:
        order, audit = order_service.mark_picked_up(
            order_number,
            invoice_check_code=_check_code(data, "invoice_check_code"),
            receipt_check_code=_check_code(data, "receipt_check_code"),
            user_id=g.current_user.id,
        )
        return jsonify({
            "message": "Order marked as picked up",
            "order": order.to_dict(),
            "audit": audit.to_dict(),
        }), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark order picked up")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<identifier>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_route(identifier: str):
    """Accepts a numeric id or an order number (case-insensitive)."""
    try:
        return jsonify(order_service.get_order(identifier).to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/pay")
@require_auth
@require_permission("MARK_ORDER_PAID")
def pay_order_route(order_id: int):
    try:
        order = order_service.mark_paid(order_id, user_id=g.current_user.id)
        return jsonify(order.to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark order paid")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/complete")
@require_auth
@require_permission("COMPLETE_ORDER")
def complete_order_route(order_id: int):
    try:
        order = order_service.mark_complete(order_id, user_id=g.current_user.id)
        return jsonify(order.to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/cancel")
@require_auth
@require_permission("CANCEL_ORDER")
def cancel_order_route(order_id: int):
    """Pending orders only; every line's quantity goes back into stock."""
    try:
        result = order_service.mark_cancelled(order_id, user_id=g.current_user.id)
        return jsonify(result.to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
