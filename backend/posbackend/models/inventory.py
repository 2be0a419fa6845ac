from __future__ import annotations

from ..extensions import db
from posbackend.time_utils import to_utc_z, utcnow


RESTOCK_INITIATED = "initiated"
RESTOCK_IN_TRANSIT = "in_transit"
RESTOCK_RECEIVED = "received"
RESTOCK_CANCELLED = "cancelled"
RESTOCK_STATUSES = (RESTOCK_INITIATED, RESTOCK_IN_TRANSIT, RESTOCK_RECEIVED, RESTOCK_CANCELLED)
RESTOCK_OPEN_STATUSES = (RESTOCK_INITIATED, RESTOCK_IN_TRANSIT)

SNAPSHOT_DAY_START = "day_start"
SNAPSHOT_DAY_END = "day_end"
SNAPSHOT_KINDS = (SNAPSHOT_DAY_START, SNAPSHOT_DAY_END)


class Stock(db.Model):
    """
    On-hand quantity per (product, store).

    Mutated in place; the audit log is the history of its changes. Quantity is
    a float because weight products are stocked in grams.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.UniqueConstraint("product_id", "store_id", name="uq_stocks_product_store"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False, default=0.0)
    low_stock_threshold = db.Column(db.Float, nullable=False, default=0.0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("stock_rows", lazy=True))
    store = db.relationship("Store", backref=db.backref("stock_rows", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low": self.is_low,
            "last_updated": to_utc_z(self.last_updated),
        }


class StockSnapshot(db.Model):
    """
    Stocktake figure for one (day, product, store, kind).

    Written by day-start / day-end stocktakes and by the snapshot CLI; read by
    the daily stock report.
    """
    __tablename__ = "stock_snapshots"
    __table_args__ = (
        db.UniqueConstraint(
            "snapshot_date", "product_id", "store_id", "kind",
            name="uq_stock_snapshots_day_product_store_kind",
        ),
        db.Index("ix_stock_snapshots_date_store", "snapshot_date", "store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    snapshot_date = db.Column(db.Date, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")
    store = db.relationship("Store")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "snapshot_date": self.snapshot_date.isoformat(),
            "product_id": self.product_id,
            "store_id": self.store_id,
            "kind": self.kind,
            "quantity": self.quantity,
            "recorded_by_user_id": self.recorded_by_user_id,
            "recorded_at": to_utc_z(self.recorded_at),
        }


class RestockOrder(db.Model):
    """Inbound shipment to a store: initiated -> in_transit -> received (or cancelled)."""
    __tablename__ = "restock_orders"
    __table_args__ = (
        db.Index("ix_restock_orders_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    initiated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RESTOCK_INITIATED, index=True)
    notes = db.Column(db.Text, nullable=True)

    initiated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store")
    initiated_by = db.relationship("User")
    items = db.relationship(
        "RestockOrderItem",
        backref="restock_order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="RestockOrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "initiated_by_user_id": self.initiated_by_user_id,
            "tracking_number": self.tracking_number,
            "status": self.status,
            "notes": self.notes,
            "initiated_at": to_utc_z(self.initiated_at),
            "shipped_at": to_utc_z(self.shipped_at) if self.shipped_at else None,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "items": [item.to_dict() for item in self.items],
        }


class RestockOrderItem(db.Model):
    __tablename__ = "restock_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    restock_order_id = db.Column(db.Integer, db.ForeignKey("restock_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Float, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restock_order_id": self.restock_order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
        }
