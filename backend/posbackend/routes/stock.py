# Overview: Flask API routes for the stock ledger; levels, adjustments, stocktakes and reports.

# backend/posbackend/routes/stock.py
"""
Stock ledger routes.

SECURITY:
- Reads require VIEW_STOCK (reports: VIEW_STOCK_REPORT)
- PUT /stock/<product_id>/<store_id> accepts ADJUST_STOCK or RECORD_STOCKTAKE;
  callers holding only RECORD_STOCKTAKE may submit stocktake counts and
  nothing else
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import stock_service, permission_service
from ..services.stock_service import REASON_STOCKTAKE_DAY_END, REASON_STOCKTAKE_DAY_START
from ..errors import POSError, error_response
from ..validation import ValidationError, coerce_float, coerce_int
from ..decorators import require_auth, require_permission, require_any_permission
from posbackend.time_utils import parse_day, utcnow

stock_bp = Blueprint("stock", __name__, url_prefix="/api/v1/stock")

STOCKTAKE_REASONS = (REASON_STOCKTAKE_DAY_START, REASON_STOCKTAKE_DAY_END)


@stock_bp.get("")
@require_auth
@require_permission("VIEW_STOCK")
def list_stock_route():
    """
    Stock rows with the quantity still on its way in open restock orders.

    Query params:
    - store_id: int (optional)
    """
    store_id = request.args.get("store_id", type=int)
    try:
        return jsonify({"stock": stock_service.list_stock(store_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to list stock")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_STOCK")
def low_stock_route():
    store_id = request.args.get("store_id", type=int)
    rows = stock_service.list_low_stock(store_id)
    return jsonify({"stock": [s.to_dict() for s in rows]}), 200


@stock_bp.get("/incoming")
@require_auth
@require_permission("VIEW_STOCK")
def incoming_stock_route():
    """Open (initiated or in transit) restock orders."""
    store_id = request.args.get("store_id", type=int)
    orders = stock_service.list_incoming_stock(store_id)
    return jsonify({"restock_orders": [o.to_dict() for o in orders]}), 200


@stock_bp.get("/report")
@require_auth
@require_permission("VIEW_STOCK_REPORT")
def stock_report_route():
    """
    Day-start / day-end stocktake quantities for one day.

    Query params:
    - date: YYYY-MM-DD (default: today, UTC)
    - store_id: int (optional)
    """
    store_id = request.args.get("store_id", type=int)
    try:
        day = parse_day(request.args.get("date")) or utcnow().date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        rows = stock_service.stock_report(day, store_id=store_id)
        return jsonify({"date": day.isoformat(), "store_id": store_id, "items": rows}), 200
    except Exception:
        current_app.logger.exception("Failed to build stock report")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.post("/snapshots")
@require_auth
@require_permission("RECORD_STOCKTAKE")
def record_snapshot_route():
    """
    Capture the current quantities of a store as a day-start or day-end snapshot.

    Request body: {"kind": "day_start" | "day_end", "store_id": 1, "date": "2026-10-18"}
    """
    data = request.get_json(silent=True) or {}
    raw_date = data.get("date")
    try:
        day = parse_day(str(raw_date)) if raw_date else None
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        snapshots = stock_service.record_snapshot(
            data.get("kind"),
            day=day,
            store_id=coerce_int(data["store_id"], "store_id") if data.get("store_id") is not None else None,
            user_id=g.current_user.id,
        )
        return jsonify({
            "recorded": len(snapshots),
            "snapshots": [s.to_dict() for s in snapshots],
        }), 201
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record stock snapshot")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/<int:store_id>")
@require_auth
@require_permission("VIEW_STOCK")
def store_stock_route(store_id: int):
    try:
        rows = stock_service.get_store_stock(store_id)
        return jsonify({"store_id": store_id, "stock": [s.to_dict() for s in rows]}), 200
    except POSError as e:
        return error_response(e)


@stock_bp.put("/<int:product_id>/<int:store_id>")
@require_auth
@require_any_permission("ADJUST_STOCK", "RECORD_STOCKTAKE")
def adjust_stock_route(product_id: int, store_id: int):
    """
    Overwrite the on-hand quantity.

    Request body:
    {
        "quantity": 12,
        "reason": "stocktake_day_start",     // optional free text
        "low_stock_threshold": 5              // optional
    }

    The stocktake reasons also write the day's snapshot.
    """
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")

    if not permission_service.user_has_permission(g.current_user, "ADJUST_STOCK") \
            and reason not in STOCKTAKE_REASONS:
        permission_service.log_security_event(
            user_id=g.current_user.id,
            reason="Stock adjustment outside a stocktake",
            resource=request.path,
            action="ADJUST_STOCK",
        )
        return jsonify({
            "error": "Permission denied",
            "required_permission": "ADJUST_STOCK",
            "message": f"Without ADJUST_STOCK the reason must be one of: {', '.join(STOCKTAKE_REASONS)}",
        }), 403

    try:
        if data.get("quantity") is None:
            raise ValidationError("Missing required fields: quantity")
        quantity = coerce_float(data["quantity"], "quantity")
        threshold = data.get("low_stock_threshold")
        stock, audit = stock_service.adjust_stock(
            product_id,
            store_id,
            quantity,
            reason=reason,
            low_stock_threshold=coerce_float(threshold, "low_stock_threshold") if threshold is not None else None,
            user_id=g.current_user.id,
        )
        return jsonify({"stock": stock.to_dict(), "audit": audit.to_dict()}), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
