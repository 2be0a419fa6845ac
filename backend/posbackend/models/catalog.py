from __future__ import annotations

from ..extensions import db
from posbackend.time_utils import to_utc_z


class Sector(db.Model):
    """
    Customer segment (trade, online, staff...). Carries a base discount rate
    that applies to every product before any product-specific override.
    """
    __tablename__ = "sectors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    discount_rate = db.Column(db.Float, nullable=False, default=0.0)  # percent
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "discount_rate": self.discount_rate,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Catalog item. Soft-deleted through is_active: orders keep pointing at it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    name_chinese = db.Column(db.String(255), nullable=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    category = db.Column(db.String(128), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    # "quantity" (each) or "weight" (grams)
    unit_type = db.Column(db.String(16), nullable=False, default="quantity")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_chinese": self.name_chinese,
            "barcode": self.barcode,
            "sku": self.sku,
            "category": self.category,
            "image_url": self.image_url,
            "unit_type": self.unit_type,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
