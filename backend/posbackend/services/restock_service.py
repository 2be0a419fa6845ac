# Overview: Inbound restock orders; create, ship (tracking), receive into stock, cancel.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidTransition, NotFound
from ..models import (
    Product,
    RestockOrder,
    RestockOrderItem,
    Store,
    RESTOCK_CANCELLED,
    RESTOCK_IN_TRANSIT,
    RESTOCK_INITIATED,
    RESTOCK_OPEN_STATUSES,
    RESTOCK_RECEIVED,
    RESTOCK_STATUSES,
)
from ..validation import ValidationError
from posbackend.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry
from .outcomes import SideEffectOutcome
from .stock_service import receive_into_stock


def create_restock_order(
    *,
    store_id: int,
    lines: list[tuple[int, float]],
    notes: str | None = None,
    user_id: int | None = None,
) -> RestockOrder:
    if not lines:
        raise ValidationError("items must be a non-empty list")

    def _op():
        if db.session.get(Store, store_id) is None:
            raise NotFound("Store not found")

        order = RestockOrder(
            store_id=store_id,
            initiated_by_user_id=user_id,
            status=RESTOCK_INITIATED,
            notes=notes,
            initiated_at=utcnow(),
        )
        for product_id, quantity in lines:
            if db.session.get(Product, product_id) is None:
                raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
            order.items.append(RestockOrderItem(product_id=product_id, quantity=quantity))

        db.session.add(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def list_restock_orders(*, store_id: int | None = None, status: str | None = None) -> list[RestockOrder]:
    query = db.session.query(RestockOrder)
    if store_id is not None:
        query = query.filter(RestockOrder.store_id == store_id)
    if status:
        if status not in RESTOCK_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(RESTOCK_STATUSES)}")
        query = query.filter(RestockOrder.status == status)
    return query.order_by(RestockOrder.initiated_at.desc(), RestockOrder.id.desc()).all()


def _locked_restock(restock_id: int) -> RestockOrder:
    order = lock_for_update(db.session.query(RestockOrder).filter(RestockOrder.id == restock_id)).first()
    if order is None:
        raise NotFound("Restock order not found")
    return order


def update_tracking(restock_id: int, tracking_number: str) -> RestockOrder:
    """Set the carrier tracking number; an initiated order moves to in_transit."""
    tracking_number = (tracking_number or "").strip()
    if not tracking_number:
        raise ValidationError("tracking_number is required")

    def _op():
        begin_write()
        order = _locked_restock(restock_id)
        if order.status not in RESTOCK_OPEN_STATUSES:
            raise InvalidTransition(
                f"Cannot update tracking on a {order.status} restock order",
                details={"status": order.status},
            )
        order.tracking_number = tracking_number
        if order.status == RESTOCK_INITIATED:
            order.status = RESTOCK_IN_TRANSIT
            order.shipped_at = utcnow()
        db.session.commit()
        return order

    return run_with_retry(_op)


def receive_restock_order(restock_id: int, user_id: int | None = None) -> tuple[RestockOrder, list[SideEffectOutcome]]:
    """
    Book every line into the store's stock and mark the order received.

    One transaction: the status change and all stock increments commit
    together. Returns the audit outcome for each line.
    """
    def _op():
        begin_write()
        order = _locked_restock(restock_id)
        if order.status not in RESTOCK_OPEN_STATUSES:
            raise InvalidTransition(
                f"Cannot receive a {order.status} restock order",
                details={"status": order.status},
            )
        order.status = RESTOCK_RECEIVED
        order.received_at = utcnow()

        audits = [
            receive_into_stock(
                item.product_id,
                order.store_id,
                item.quantity,
                restock_order_id=order.id,
                user_id=user_id,
            )
            for item in order.items
        ]
        db.session.commit()
        return order, audits

    return run_with_retry(_op)


def cancel_restock_order(restock_id: int) -> RestockOrder:
    def _op():
        begin_write()
        order = _locked_restock(restock_id)
        if order.status not in RESTOCK_OPEN_STATUSES:
            raise InvalidTransition(
                f"Cannot cancel a {order.status} restock order",
                details={"status": order.status},
            )
        order.status = RESTOCK_CANCELLED
        order.cancelled_at = utcnow()
        db.session.commit()
        return order

    return run_with_retry(_op)
