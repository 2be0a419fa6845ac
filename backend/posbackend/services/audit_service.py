# Overview: Service-layer operations for the audit log; append and query.

"""
Audit log invariants

- Append-only: rows are never updated or deleted by the application.
- Entries are written inside the transaction of the change they describe,
  under a SAVEPOINT, so a failed audit insert cannot roll back the change.
- A failed write is reported as a skipped SideEffectOutcome and logged.
"""

from __future__ import annotations

import json

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog, Order, Stock
from .outcomes import SideEffectOutcome

ACTION_STOCK_UPDATE = "stock_update"
ACTION_ORDER_PICKUP = "order_pickup"
ACTION_ORDER_STATUS = "order_status"
ACTION_PERMISSION_DENIED = "permission_denied"

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 1000


def _request_metadata() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return request.remote_addr, request.headers.get("User-Agent")


def record_audit(
    *,
    action: str,
    entity_type: str,
    entity_id: int | None,
    changes: dict | None = None,
    user_id: int | None = None,
) -> SideEffectOutcome:
    """
    Append an audit entry in the current transaction (does not commit).
    """
    ip_address, user_agent = _request_metadata()
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        changes=json.dumps(changes or {}, default=str, sort_keys=True),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except SQLAlchemyError as exc:
        current_app.logger.warning(
            "Audit write skipped for %s %s#%s: %s", action, entity_type, entity_id, exc
        )
        return SideEffectOutcome.skipped("audit", "audit write failed", action=action)
    return SideEffectOutcome.applied("audit", action=action, audit_log_id=entry.id)


def _clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return DEFAULT_QUERY_LIMIT
    return min(limit, MAX_QUERY_LIMIT)


def list_stock_audit_logs(
    *,
    product_id: int | None = None,
    store_id: int | None = None,
    entity_id: int | None = None,
    limit: int | None = None,
) -> list[AuditLog]:
    """
    Stock history, newest first.

    Either (product_id and store_id) or entity_id (the Stock row id) narrows
    the trail to one stock row; with neither, every stock change is returned.
    """
    query = db.session.query(AuditLog).filter(AuditLog.entity_type == "stock")

    if product_id is not None and store_id is not None:
        stock = db.session.query(Stock).filter_by(product_id=product_id, store_id=store_id).first()
        if stock is None:
            return []
        query = query.filter(AuditLog.entity_id == stock.id)
    elif entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)

    return (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(_clamp_limit(limit))
        .all()
    )


def list_order_audit_logs(
    *,
    order_id: int | None = None,
    order_number: str | None = None,
    limit: int | None = None,
) -> list[AuditLog]:
    """Order history (pickups, status changes), newest first."""
    query = db.session.query(AuditLog).filter(AuditLog.entity_type == "order")

    if order_id is None and order_number:
        order = (
            db.session.query(Order)
            .filter(db.func.upper(Order.order_number) == order_number.strip().upper())
            .first()
        )
        if order is None:
            return []
        order_id = order.id

    if order_id is not None:
        query = query.filter(AuditLog.entity_id == order_id)

    return (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(_clamp_limit(limit))
        .all()
    )
