# Overview: Stock ledger; per-store quantities, adjustments, reservations and stocktake snapshots.

"""
Stock ledger.

INVARIANTS:
- Quantity never goes below 0. Manual adjustments reject negatives; order
  reservations clamp at 0.
- Every quantity change (manual adjustment, restock receipt, order
  decrement, cancellation restore) writes a stock_update audit entry
  (entity_type "stock", entity_id = Stock.id).
- A cancelled order gives back what its creation actually deducted, so a
  clamped or skipped decrement is never turned into new stock.
- Stocktake adjustments (reason stocktake_day_start / stocktake_day_end)
  also upsert today's StockSnapshot, which the daily report reads.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFound
from ..models import (
    Product,
    RestockOrder,
    RestockOrderItem,
    Stock,
    StockSnapshot,
    Store,
    RESTOCK_OPEN_STATUSES,
    SNAPSHOT_DAY_END,
    SNAPSHOT_DAY_START,
    SNAPSHOT_KINDS,
)
from ..validation import ValidationError
from posbackend.time_utils import utcnow
from .audit_service import ACTION_STOCK_UPDATE, record_audit
from .concurrency import begin_write, lock_for_update, run_with_retry
from .outcomes import SideEffectOutcome


REASON_STOCKTAKE_DAY_START = "stocktake_day_start"
REASON_STOCKTAKE_DAY_END = "stocktake_day_end"
REASON_RESTOCK_RECEIVED = "restock_order_received"
REASON_ORDER_CREATED = "order_created"
REASON_ORDER_CANCELLED = "order_cancelled"

SNAPSHOT_KIND_BY_REASON = {
    REASON_STOCKTAKE_DAY_START: SNAPSHOT_DAY_START,
    REASON_STOCKTAKE_DAY_END: SNAPSHOT_DAY_END,
}


def _locked_stock(product_id: int, store_id: int) -> Stock | None:
    return lock_for_update(
        db.session.query(Stock).filter_by(product_id=product_id, store_id=store_id)
    ).first()


def _upsert_snapshot(*, day: date, product_id: int, store_id: int, kind: str,
                     quantity: float, user_id: int | None) -> StockSnapshot:
    snapshot = (
        db.session.query(StockSnapshot)
        .filter_by(snapshot_date=day, product_id=product_id, store_id=store_id, kind=kind)
        .first()
    )
    if snapshot is None:
        snapshot = StockSnapshot(
            snapshot_date=day,
            product_id=product_id,
            store_id=store_id,
            kind=kind,
        )
        db.session.add(snapshot)
    snapshot.quantity = quantity
    snapshot.recorded_by_user_id = user_id
    snapshot.recorded_at = utcnow()
    return snapshot


def adjust_stock(
    product_id: int,
    store_id: int,
    new_quantity: float,
    *,
    reason: str | None = None,
    low_stock_threshold: float | None = None,
    user_id: int | None = None,
) -> tuple[Stock, SideEffectOutcome]:
    """
    Overwrite the on-hand quantity, creating the Stock row when missing.

    Returns the row and the outcome of the audit write.
    """
    if new_quantity is None or new_quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if low_stock_threshold is not None and low_stock_threshold < 0:
        raise ValidationError("low_stock_threshold must be >= 0")

    def _op():
        begin_write()
        if db.session.get(Product, product_id) is None:
            raise NotFound("Product not found")
        if db.session.get(Store, store_id) is None:
            raise NotFound("Store not found")

        stock = _locked_stock(product_id, store_id)
        old_quantity = 0.0
        if stock is None:
            stock = Stock(product_id=product_id, store_id=store_id, quantity=0.0, low_stock_threshold=0.0)
            db.session.add(stock)
        else:
            old_quantity = stock.quantity

        now = utcnow()
        stock.quantity = new_quantity
        if low_stock_threshold is not None:
            stock.low_stock_threshold = low_stock_threshold
        stock.last_updated = now
        db.session.flush()

        audit = record_audit(
            action=ACTION_STOCK_UPDATE,
            entity_type="stock",
            entity_id=stock.id,
            user_id=user_id,
            changes={
                "product_id": product_id,
                "store_id": store_id,
                "old_quantity": old_quantity,
                "new_quantity": new_quantity,
                "reason": reason or "",
            },
        )

        kind = SNAPSHOT_KIND_BY_REASON.get(reason or "")
        if kind is not None:
            _upsert_snapshot(
                day=now.date(),
                product_id=product_id,
                store_id=store_id,
                kind=kind,
                quantity=new_quantity,
                user_id=user_id,
            )

        db.session.commit()
        return stock, audit

    return run_with_retry(_op)


def reserve_stock(product_id: int, store_id: int, quantity: float, *,
                  order_id: int | None = None, user_id: int | None = None) -> SideEffectOutcome:
    """
    Decrement stock for a sold line inside the caller's transaction.

    Clamps at 0. A missing Stock row is not an error: the sale stands and the
    outcome says the decrement was skipped. The applied outcome carries the
    amount actually taken off the shelf (deducted), which is what a later
    cancellation gives back.
    """
    stock = _locked_stock(product_id, store_id)
    if stock is None:
        current_app.logger.warning(
            "Stock decrement skipped: no stock row for product %s in store %s", product_id, store_id
        )
        return SideEffectOutcome.skipped(
            "stock_decrement", "no stock row",
            product_id=product_id, store_id=store_id, quantity=quantity, deducted=0.0,
        )

    old_quantity = stock.quantity
    stock.quantity = max(0.0, old_quantity - quantity)
    stock.last_updated = utcnow()
    audit = _audit_order_movement(stock, old_quantity, REASON_ORDER_CREATED, order_id, user_id)
    return SideEffectOutcome.applied(
        "stock_decrement",
        product_id=product_id,
        store_id=store_id,
        quantity=quantity,
        deducted=old_quantity - stock.quantity,
        old_quantity=old_quantity,
        new_quantity=stock.quantity,
        audit=audit.status,
    )


def release_stock(product_id: int, store_id: int, quantity: float, *,
                  order_id: int | None = None, user_id: int | None = None) -> SideEffectOutcome:
    """
    Give back stock for a cancelled line inside the caller's transaction.

    quantity is what the order actually deducted, so nothing is given back
    for lines whose decrement was clamped away or skipped.
    """
    if quantity <= 0:
        return SideEffectOutcome.skipped(
            "stock_restore", "nothing deducted", product_id=product_id, store_id=store_id, quantity=0.0
        )

    stock = _locked_stock(product_id, store_id)
    if stock is None:
        current_app.logger.warning(
            "Stock restore skipped: no stock row for product %s in store %s", product_id, store_id
        )
        return SideEffectOutcome.skipped(
            "stock_restore", "no stock row", product_id=product_id, store_id=store_id, quantity=quantity
        )

    old_quantity = stock.quantity
    stock.quantity = old_quantity + quantity
    stock.last_updated = utcnow()
    audit = _audit_order_movement(stock, old_quantity, REASON_ORDER_CANCELLED, order_id, user_id)
    return SideEffectOutcome.applied(
        "stock_restore",
        product_id=product_id,
        store_id=store_id,
        quantity=quantity,
        old_quantity=old_quantity,
        new_quantity=stock.quantity,
        audit=audit.status,
    )


def _audit_order_movement(stock: Stock, old_quantity: float, reason: str,
                          order_id: int | None, user_id: int | None) -> SideEffectOutcome:
    return record_audit(
        action=ACTION_STOCK_UPDATE,
        entity_type="stock",
        entity_id=stock.id,
        user_id=user_id,
        changes={
            "product_id": stock.product_id,
            "store_id": stock.store_id,
            "old_quantity": old_quantity,
            "new_quantity": stock.quantity,
            "reason": reason,
            "order_id": order_id,
        },
    )


def receive_into_stock(product_id: int, store_id: int, quantity: float, *,
                       restock_order_id: int, user_id: int | None = None) -> SideEffectOutcome:
    """Add received restock quantity, creating the row if needed; audited. No commit."""
    stock = _locked_stock(product_id, store_id)
    old_quantity = 0.0
    if stock is None:
        stock = Stock(product_id=product_id, store_id=store_id, quantity=0.0, low_stock_threshold=0.0)
        db.session.add(stock)
    else:
        old_quantity = stock.quantity

    stock.quantity = old_quantity + quantity
    stock.last_updated = utcnow()
    db.session.flush()

    return record_audit(
        action=ACTION_STOCK_UPDATE,
        entity_type="stock",
        entity_id=stock.id,
        user_id=user_id,
        changes={
            "product_id": product_id,
            "store_id": store_id,
            "old_quantity": old_quantity,
            "new_quantity": stock.quantity,
            "added_quantity": quantity,
            "reason": REASON_RESTOCK_RECEIVED,
            "restock_order_id": restock_order_id,
        },
    )


def incoming_quantities(store_id: int | None = None) -> dict[tuple[int, int], float]:
    """Sum of open restock quantities keyed by (product_id, store_id)."""
    query = (
        db.session.query(
            RestockOrderItem.product_id,
            RestockOrder.store_id,
            func.sum(RestockOrderItem.quantity),
        )
        .join(RestockOrder, RestockOrderItem.restock_order_id == RestockOrder.id)
        .filter(RestockOrder.status.in_(RESTOCK_OPEN_STATUSES))
        .group_by(RestockOrderItem.product_id, RestockOrder.store_id)
    )
    if store_id is not None:
        query = query.filter(RestockOrder.store_id == store_id)
    return {(product_id, sid): float(total or 0.0) for product_id, sid, total in query.all()}


def list_stock(store_id: int | None = None) -> list[dict]:
    query = db.session.query(Stock)
    if store_id is not None:
        query = query.filter(Stock.store_id == store_id)
    rows = query.order_by(Stock.store_id.asc(), Stock.product_id.asc()).all()

    incoming = incoming_quantities(store_id)
    result = []
    for stock in rows:
        data = stock.to_dict()
        data["incoming_quantity"] = incoming.get((stock.product_id, stock.store_id), 0.0)
        result.append(data)
    return result


def get_store_stock(store_id: int) -> list[Stock]:
    if db.session.get(Store, store_id) is None:
        raise NotFound("Store not found")
    return (
        db.session.query(Stock)
        .filter(Stock.store_id == store_id)
        .order_by(Stock.product_id.asc())
        .all()
    )


def list_low_stock(store_id: int | None = None) -> list[Stock]:
    query = db.session.query(Stock).filter(Stock.quantity <= Stock.low_stock_threshold)
    if store_id is not None:
        query = query.filter(Stock.store_id == store_id)
    return query.order_by(Stock.store_id.asc(), Stock.quantity.asc()).all()


def list_incoming_stock(store_id: int | None = None) -> list[RestockOrder]:
    query = db.session.query(RestockOrder).filter(RestockOrder.status.in_(RESTOCK_OPEN_STATUSES))
    if store_id is not None:
        query = query.filter(RestockOrder.store_id == store_id)
    return query.order_by(RestockOrder.initiated_at.desc(), RestockOrder.id.desc()).all()


def record_snapshot(kind: str, *, day: date | None = None, store_id: int | None = None,
                    user_id: int | None = None) -> list[StockSnapshot]:
    """Capture every Stock row of a store (or of all stores) as a snapshot of `kind`."""
    if kind not in SNAPSHOT_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(SNAPSHOT_KINDS)}")
    if store_id is not None and db.session.get(Store, store_id) is None:
        raise NotFound("Store not found")

    snapshot_day = day or utcnow().date()

    def _op():
        begin_write()
        query = db.session.query(Stock)
        if store_id is not None:
            query = query.filter(Stock.store_id == store_id)
        snapshots = [
            _upsert_snapshot(
                day=snapshot_day,
                product_id=stock.product_id,
                store_id=stock.store_id,
                kind=kind,
                quantity=stock.quantity,
                user_id=user_id,
            )
            for stock in query.all()
        ]
        db.session.commit()
        return snapshots

    return run_with_retry(_op)


def stock_report(day: date, store_id: int | None = None) -> list[dict]:
    """
    Day-start and day-end quantities for one calendar day.

    A product appears when it has either snapshot; the missing side is None.
    Sorted by store name, then product name.
    """
    query = db.session.query(StockSnapshot).filter(StockSnapshot.snapshot_date == day)
    if store_id is not None:
        query = query.filter(StockSnapshot.store_id == store_id)

    rows: dict[tuple[int, int], dict] = {}
    for snapshot in query.all():
        key = (snapshot.product_id, snapshot.store_id)
        row = rows.get(key)
        if row is None:
            row = {
                "product_id": snapshot.product_id,
                "product_name": snapshot.product.name if snapshot.product else None,
                "store_id": snapshot.store_id,
                "store_name": snapshot.store.name if snapshot.store else None,
                "day_start_quantity": None,
                "day_end_quantity": None,
            }
            rows[key] = row
        row[f"{snapshot.kind}_quantity"] = snapshot.quantity

    return sorted(rows.values(), key=lambda r: (r["store_name"] or "", r["product_name"] or ""))


def last_stocktake_at(store_id: int | None):
    """Most recent day-start stocktake for a store, or None."""
    if store_id is None:
        return None
    return (
        db.session.query(func.max(StockSnapshot.recorded_at))
        .filter(
            StockSnapshot.store_id == store_id,
            StockSnapshot.kind == SNAPSHOT_DAY_START,
        )
        .scalar()
    )
