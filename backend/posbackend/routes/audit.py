# Overview: Flask API routes for audit log queries.

from flask import Blueprint, request, jsonify

from ..services.audit_service import list_order_audit_logs, list_stock_audit_logs
from ..decorators import require_auth, require_permission

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1/audit")


@audit_bp.get("/stock")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def stock_audit_route():
    """
    Stock change trail, newest first.

    Query params:
    - product_id + store_id, or entity_id (the stock row id)
    - limit: default 100, max 1000
    """
    logs = list_stock_audit_logs(
        product_id=request.args.get("product_id", type=int),
        store_id=request.args.get("store_id", type=int),
        entity_id=request.args.get("entity_id", type=int),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"logs": [entry.to_dict() for entry in logs]}), 200


@audit_bp.get("/order")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def order_audit_route():
    """Query params: order_id or order_number; limit."""
    logs = list_order_audit_logs(
        order_id=request.args.get("order_id", type=int),
        order_number=request.args.get("order_number"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"logs": [entry.to_dict() for entry in logs]}), 200
