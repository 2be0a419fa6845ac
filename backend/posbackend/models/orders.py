from __future__ import annotations

import json

from ..extensions import db
from posbackend.time_utils import to_utc_z, utcnow


ORDER_PENDING = "pending"
ORDER_PAID = "paid"
ORDER_COMPLETED = "completed"
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES = (ORDER_PENDING, ORDER_PAID, ORDER_COMPLETED, ORDER_CANCELLED)

# Statuses that count as revenue in the dashboard stats
REVENUE_STATUSES = (ORDER_PAID, ORDER_COMPLETED)


class Order(db.Model):
    """
    Customer order snapshot.

    Prices, discounts and totals are captured at creation and never
    recomputed; later cost or discount changes do not touch existing orders.
    Only status and lifecycle timestamps change afterwards.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "ORD-20240101-1234"
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    device_code = db.Column(db.String(128), nullable=True)
    sector_id = db.Column(db.Integer, db.ForeignKey("sectors.id"), nullable=True)

    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)

    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)

    qr_code_data = db.Column(db.Text, nullable=True)
    invoice_check_code = db.Column(db.String(4), nullable=True)
    receipt_check_code = db.Column(db.String(4), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    picked_up_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store")
    user = db.relationship("User")
    sector = db.relationship("Sector")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def qr_payload(self) -> dict | None:
        if not self.qr_code_data:
            return None
        return json.loads(self.qr_code_data)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "device_code": self.device_code,
            "sector_id": self.sector_id,
            "sector_name": self.sector.name if self.sector else None,
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
            "status": self.status,
            "qr_code_data": self.qr_payload,
            "invoice_check_code": self.invoice_check_code,
            "receipt_check_code": self.receipt_check_code,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "picked_up_at": to_utc_z(self.picked_up_at) if self.picked_up_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Priced line captured at order creation."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Float, nullable=False)
    base_price = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    discount_percent = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    line_total = db.Column(db.Float, nullable=False)
    # Quantity actually taken off the shelf at creation (after clamping)
    stock_deducted = db.Column(db.Float, nullable=False, default=0.0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "base_price": self.base_price,
            "unit_price": self.unit_price,
            "discount_percent": self.discount_percent,
            "discount_amount": self.discount_amount,
            "line_total": self.line_total,
            "stock_deducted": self.stock_deducted,
        }
