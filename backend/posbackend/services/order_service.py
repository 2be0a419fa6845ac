# Overview: Order lifecycle; creation, payment, completion, cancellation, pickup and stats.

"""
Order lifecycle.

    pending -> paid -> completed
    pending -> cancelled
    pickup: pending | paid | completed (or paid_at set) -> completed + picked_up_at

Orders are snapshots: items carry the prices computed at creation and are
never re-priced. Creation and cancellation are single transactions covering
the order row, its items, stock movements and price history.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import AlreadyPickedUp, CheckCodeMismatch, InvalidTransition, NotFound, NotPaid
from ..models import (
    Order,
    OrderItem,
    Product,
    Sector,
    Store,
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_PAID,
    ORDER_PENDING,
    ORDER_STATUSES,
    REVENUE_STATUSES,
)
from ..validation import ConflictError, ValidationError
from posbackend.time_utils import day_bounds, to_utc_z, utcnow
from .audit_service import ACTION_ORDER_PICKUP, ACTION_ORDER_STATUS, record_audit
from .concurrency import begin_write, lock_for_update, run_with_retry
from .outcomes import SideEffectOutcome
from .price_history_service import record_price_history
from .pricing_service import quote_order
from .stock_service import release_stock, reserve_stock


CHECK_CODE_INVOICE = "invoice"
CHECK_CODE_RECEIPT = "receipt"

STATS_DEFAULT_DAYS = 30
STATS_MAX_DAYS = 365

_INT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


@dataclass
class OrderResult:
    """An order plus the outcome of the stock movements made for it."""
    order: Order
    stock_effects: list[SideEffectOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.order.to_dict()
        data["stock_effects"] = [effect.to_dict() for effect in self.stock_effects]
        return data


def generate_check_code(order_number: str, total_amount: float, receipt_type: str) -> str:
    """
    Four-digit code printed on invoices and receipts.

    Polynomial hash (h = h*31 + code point) over "<number>-<total:.2f>-<type>"
    with signed 64-bit wraparound, so it matches the till firmware bit for bit.
    """
    combined = f"{order_number}-{total_amount:.2f}-{receipt_type}"
    h = 0
    for ch in combined:
        h = (h * 31 + ord(ch)) & _INT64_MASK
    if h & _INT64_SIGN:
        h -= 1 << 64
    return f"{abs(h) % 10000:04d}"


def _order_number_taken(order_number: str) -> bool:
    return db.session.query(Order.id).filter(Order.order_number == order_number).first() is not None


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-<YYYYMMDD>-<unix seconds mod 10000>, bumped until unused."""
    now = now or utcnow()
    prefix = f"ORD-{now:%Y%m%d}-"
    # Naive UTC: compute epoch seconds without local-time conversion.
    suffix = int((now - datetime(1970, 1, 1)).total_seconds()) % 10000
    for _ in range(10000):
        candidate = f"{prefix}{suffix:04d}"
        if not _order_number_taken(candidate):
            return candidate
        suffix = (suffix + 1) % 10000
    raise ConflictError("No order numbers left for today")


def create_order(
    *,
    store_id: int,
    user_id: int,
    lines: list[tuple[int, float]],
    sector_id: int | None = None,
    device_code: str | None = None,
) -> OrderResult:
    """
    Price and persist an order, decrement stock, record price history.

    Everything happens in one transaction; a pricing failure on any line
    (unknown product, no active cost) leaves nothing behind. Missing stock
    rows do not fail the order and are reported in stock_effects.
    """
    if not lines:
        raise ValidationError("items must be a non-empty list")

    def _op():
        begin_write()
        store = db.session.get(Store, store_id)
        if store is None or not store.is_active:
            raise NotFound("Store not found")
        if sector_id is not None and db.session.get(Sector, sector_id) is None:
            raise NotFound("Sector not found")

        now = utcnow()
        quote = quote_order(lines, sector_id, at=now)

        order_number = generate_order_number(now)
        total = quote.total_amount
        order = Order(
            order_number=order_number,
            store_id=store_id,
            user_id=user_id,
            device_code=device_code,
            sector_id=sector_id,
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            total_amount=total,
            status=ORDER_PENDING,
            invoice_check_code=generate_check_code(order_number, total, CHECK_CODE_INVOICE),
            receipt_check_code=generate_check_code(order_number, total, CHECK_CODE_RECEIPT),
            qr_code_data=json.dumps({
                "order_number": order_number,
                "subtotal": quote.subtotal,
                "discount": quote.discount_amount,
                "total": total,
                "created_at": to_utc_z(now),
            }),
            created_at=now,
        )
        for line in quote.lines:
            order.items.append(OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                base_price=line.base_price,
                unit_price=line.unit_price,
                discount_percent=line.discount_percent,
                discount_amount=line.discount_amount,
                line_total=line.line_total,
            ))
        db.session.add(order)
        db.session.flush()

        stock_effects = []
        for item in order.items:
            effect = reserve_stock(item.product_id, store_id, item.quantity, order_id=order.id, user_id=user_id)
            item.stock_deducted = effect.details["deducted"]
            stock_effects.append(effect)

        for line in quote.lines:
            record_price_history(
                product_id=line.product_id,
                sector_id=sector_id,
                base_price=line.base_price,
                discount_percent=line.discount_percent,
                final_price=line.unit_price,
                source="order",
            )

        db.session.commit()
        current_app.logger.info("Created order %s (total %.2f)", order.order_number, order.total_amount)
        return OrderResult(order=order, stock_effects=stock_effects)

    return run_with_retry(_op)


def _locked_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
    if order is None:
        raise NotFound("Order not found")
    return order


def _audit_status_change(order: Order, old_status: str, user_id: int | None) -> SideEffectOutcome:
    return record_audit(
        action=ACTION_ORDER_STATUS,
        entity_type="order",
        entity_id=order.id,
        user_id=user_id,
        changes={
            "order_number": order.order_number,
            "old_status": old_status,
            "new_status": order.status,
        },
    )


def mark_paid(order_id: int, user_id: int | None = None) -> Order:
    """pending|paid -> paid. A repeat payment just moves paid_at forward."""
    def _op():
        begin_write()
        order = _locked_order(order_id)
        if order.status not in (ORDER_PENDING, ORDER_PAID):
            raise InvalidTransition(
                f"Cannot mark {order.status} order as paid",
                details={"status": order.status},
            )
        old_status = order.status
        order.status = ORDER_PAID
        order.paid_at = utcnow()
        _audit_status_change(order, old_status, user_id)
        db.session.commit()
        return order

    return run_with_retry(_op)


def mark_complete(order_id: int, user_id: int | None = None) -> Order:
    def _op():
        begin_write()
        order = _locked_order(order_id)
        if order.status != ORDER_PAID:
            raise InvalidTransition(
                "Order must be paid before completion",
                details={"status": order.status},
            )
        order.status = ORDER_COMPLETED
        order.completed_at = utcnow()
        _audit_status_change(order, ORDER_PAID, user_id)
        db.session.commit()
        return order

    return run_with_retry(_op)


def mark_cancelled(order_id: int, user_id: int | None = None) -> OrderResult:
    """pending -> cancelled, giving back what each line took off the shelf."""
    def _op():
        begin_write()
        order = _locked_order(order_id)
        if order.status != ORDER_PENDING:
            raise InvalidTransition(
                "Only pending orders can be cancelled",
                details={"status": order.status},
            )
        stock_effects = [
            release_stock(item.product_id, order.store_id, item.stock_deducted,
                          order_id=order.id, user_id=user_id)
            for item in order.items
        ]
        order.status = ORDER_CANCELLED
        order.cancelled_at = utcnow()
        _audit_status_change(order, ORDER_PENDING, user_id)
        db.session.commit()
        return OrderResult(order=order, stock_effects=stock_effects)

    return run_with_retry(_op)


def _find_by_number(order_number: str, *, lock: bool = False) -> Order | None:
    query = db.session.query(Order).filter(
        func.upper(Order.order_number) == order_number.strip().upper()
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def mark_picked_up(
    order_number: str,
    *,
    invoice_check_code: str | None = None,
    receipt_check_code: str | None = None,
    user_id: int | None = None,
) -> tuple[Order, SideEffectOutcome]:
    """
    Record collection of an order scanned from its QR code.

    Check codes are verified only when both are supplied.
    """
    def _op():
        begin_write()
        order = _find_by_number(order_number or "", lock=True)
        if order is None:
            raise NotFound(f"Order not found: {order_number}")

        if invoice_check_code and receipt_check_code:
            if not order.invoice_check_code or not order.receipt_check_code:
                raise ValidationError("Order has no stored check codes")
            if invoice_check_code != order.invoice_check_code:
                raise CheckCodeMismatch("Invalid invoice check code")
            if receipt_check_code != order.receipt_check_code:
                raise CheckCodeMismatch("Invalid receipt check code")

        if order.status not in (ORDER_PENDING, ORDER_PAID, ORDER_COMPLETED) and order.paid_at is None:
            raise NotPaid(
                f"Order must be paid before pickup. Current status: {order.status}",
                details={"status": order.status},
            )

        if order.picked_up_at is not None:
            raise AlreadyPickedUp(
                "Order already picked up",
                details={
                    "picked_up_at": to_utc_z(order.picked_up_at),
                    "order_number": order.order_number,
                },
            )

        now = utcnow()
        order.status = ORDER_COMPLETED
        order.picked_up_at = now
        if order.completed_at is None:
            order.completed_at = now

        audit = record_audit(
            action=ACTION_ORDER_PICKUP,
            entity_type="order",
            entity_id=order.id,
            user_id=user_id,
            changes={
                "order_id": order.id,
                "order_number": order.order_number,
                "status": "picked_up",
                "picked_up_at": to_utc_z(now),
            },
        )
        db.session.commit()
        return order, audit

    return run_with_retry(_op)


def get_order(identifier) -> Order:
    """Look up by numeric id first, then by order number."""
    order = None
    text_id = str(identifier).strip()
    if text_id.isdigit():
        order = db.session.get(Order, int(text_id))
    if order is None:
        order = _find_by_number(text_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def clamp_limit(limit: int | None) -> int:
    default = current_app.config.get("ORDER_LIST_DEFAULT_LIMIT", 100)
    maximum = current_app.config.get("ORDER_LIST_MAX_LIMIT", 1000)
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


def list_orders(
    *,
    store_id: int | None = None,
    status: str | None = None,
    user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
) -> list[Order]:
    query = db.session.query(Order)
    if store_id is not None:
        query = query.filter(Order.store_id == store_id)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(Order.status == status)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if start_date is not None:
        query = query.filter(Order.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.filter(Order.created_at < day_bounds(end_date)[1])

    return (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .limit(clamp_limit(limit))
        .all()
    )


def stats_window(days: int | None = None, start_date: date | None = None,
                 end_date: date | None = None) -> tuple[datetime, datetime]:
    """
    [start, end) for the stats endpoints.

    Explicit dates win (swapped when reversed); otherwise the last `days`
    days up to and including today, days defaulting to 30 and capped at 365.
    """
    if start_date is not None and end_date is not None:
        if end_date < start_date:
            start_date, end_date = end_date, start_date
        return day_bounds(start_date)[0], day_bounds(end_date)[1]

    if days is None or days <= 0 or days > STATS_MAX_DAYS:
        days = STATS_DEFAULT_DAYS
    today = utcnow().date()
    return day_bounds(today - timedelta(days=days))[0], day_bounds(today)[1]


def _day_key(value) -> str:
    # SQLite returns DATE() as text, PostgreSQL as a date.
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def daily_revenue_stats(*, start: datetime, end: datetime, store_id: int | None = None) -> list[dict]:
    day = func.date(Order.created_at)
    query = (
        db.session.query(day, func.sum(Order.total_amount), func.count(Order.id))
        .filter(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.in_(REVENUE_STATUSES),
        )
        .group_by(day)
        .order_by(day.asc())
    )
    if store_id is not None:
        query = query.filter(Order.store_id == store_id)

    return [
        {"date": _day_key(d), "revenue": float(revenue or 0.0), "order_count": int(count)}
        for d, revenue, count in query.all()
    ]


def daily_product_sales_stats(*, start: datetime, end: datetime, store_id: int | None = None) -> list[dict]:
    day = func.date(Order.created_at)
    query = (
        db.session.query(
            day,
            OrderItem.product_id,
            Product.name,
            Product.name_chinese,
            func.sum(OrderItem.quantity),
            func.sum(OrderItem.line_total),
        )
        .join(OrderItem, OrderItem.order_id == Order.id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.in_(REVENUE_STATUSES),
        )
        .group_by(day, OrderItem.product_id, Product.name, Product.name_chinese)
        .order_by(day.asc(), OrderItem.product_id.asc())
    )
    if store_id is not None:
        query = query.filter(Order.store_id == store_id)

    return [
        {
            "date": _day_key(d),
            "product_id": product_id,
            "product_name": name,
            "product_name_chinese": name_chinese,
            "quantity": float(quantity or 0.0),
            "revenue": float(revenue or 0.0),
        }
        for d, product_id, name, name_chinese, quantity, revenue in query.all()
    ]
