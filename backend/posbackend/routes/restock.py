# Overview: Flask API routes for restock orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import restock_service
from ..services.pricing_service import parse_lines
from ..errors import POSError, error_response
from ..validation import ValidationError, coerce_int
from ..decorators import require_auth, require_permission

restock_bp = Blueprint("restock", __name__, url_prefix="/api/v1/restock-orders")


@restock_bp.get("")
@require_auth
@require_permission("VIEW_STOCK")
def list_restock_orders_route():
    """
    Newest first.

    Query params:
    - store_id: int (optional)
    - status: initiated | in_transit | received | cancelled (optional)
    """
    try:
        orders = restock_service.list_restock_orders(
            store_id=request.args.get("store_id", type=int),
            status=request.args.get("status"),
        )
        return jsonify({"restock_orders": [o.to_dict() for o in orders]}), 200
    except ValidationError as e:
        return error_response(e)


@restock_bp.post("")
@require_auth
@require_permission("MANAGE_RESTOCK")
def create_restock_order_route():
    """
    Request body:
    {
        "store_id": 1,
        "items": [{"product_id": 3, "quantity": 24}],
        "notes": "Autumn shipment"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("store_id") is None:
            raise ValidationError("Missing required fields: store_id")
        order = restock_service.create_restock_order(
            store_id=coerce_int(data["store_id"], "store_id"),
            lines=parse_lines(data.get("items")),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
        return jsonify(order.to_dict()), 201
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create restock order")
        return jsonify({"error": "Internal server error"}), 500


@restock_bp.put("/<int:restock_id>/tracking")
@require_auth
@require_permission("MANAGE_RESTOCK")
def update_tracking_route(restock_id: int):
    """Request body: {"tracking_number": "SF123456789"}; an initiated order moves to in_transit."""
    data = request.get_json(silent=True) or {}
    try:
        order = restock_service.update_tracking(restock_id, data.get("tracking_number"))
        return jsonify(order.to_dict()), 200
    except (POSError, ValidationError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update restock tracking")
        return jsonify({"error": "Internal server error"}), 500


@restock_bp.put("/<int:restock_id>/receive")
@require_auth
@require_permission("RECEIVE_RESTOCK")
def receive_restock_order_route(restock_id: int):
    try:
        order, audits = restock_service.receive_restock_order(restock_id, user_id=g.current_user.id)
        body = order.to_dict()
        body["audit"] = [a.to_dict() for a in audits]
        return jsonify(body), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive restock order")
        return jsonify({"error": "Internal server error"}), 500


@restock_bp.put("/<int:restock_id>/cancel")
@require_auth
@require_permission("MANAGE_RESTOCK")
def cancel_restock_order_route(restock_id: int):
    try:
        order = restock_service.cancel_restock_order(restock_id)
        return jsonify(order.to_dict()), 200
    except POSError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel restock order")
        return jsonify({"error": "Internal server error"}), 500
