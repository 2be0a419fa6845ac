from __future__ import annotations

from ..extensions import db
from posbackend.time_utils import to_utc_z, utcnow


class ProductCost(db.Model):
    """
    Temporally-versioned cost build-up for a product.

    INVARIANTS:
    - Rows are never edited in place: a new cost deactivates the active row
      (effective_to = now) and inserts a fresh one in the same transaction.
    - At most one row per product has effective_to IS NULL; the partial
      unique index enforces it on SQLite and PostgreSQL.

    Purchase-side inputs are in HKD, everything derived is in GBP.
    """
    __tablename__ = "product_costs"
    __table_args__ = (
        db.Index(
            "uq_product_costs_one_active",
            "product_id",
            unique=True,
            sqlite_where=db.text("effective_to IS NULL"),
            postgresql_where=db.text("effective_to IS NULL"),
        ),
        db.Index("ix_product_costs_product_window", "product_id", "effective_from", "effective_to"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Inputs
    exchange_rate = db.Column(db.Float, nullable=False)  # HKD per GBP
    purchasing_cost_hkd = db.Column(db.Float, nullable=False, default=0.0)
    unit_weight_g = db.Column(db.Float, nullable=False, default=0.0)
    purchasing_cost_buffer_percent = db.Column(db.Float, nullable=False, default=0.0)
    weight_g = db.Column(db.Float, nullable=False, default=0.0)
    weight_buffer_percent = db.Column(db.Float, nullable=False, default=0.0)
    freight_rate_hkd_per_kg = db.Column(db.Float, nullable=False, default=0.0)
    freight_buffer_hkd = db.Column(db.Float, nullable=False, default=0.0)
    import_duty_percent = db.Column(db.Float, nullable=False, default=0.0)
    packaging_gbp = db.Column(db.Float, nullable=False, default=0.0)

    # Derived
    purchasing_cost_gbp = db.Column(db.Float, nullable=False, default=0.0)
    cost_buffer_gbp = db.Column(db.Float, nullable=False, default=0.0)
    adjusted_purchasing_cost_gbp = db.Column(db.Float, nullable=False, default=0.0)
    freight_hkd = db.Column(db.Float, nullable=False, default=0.0)
    freight_gbp = db.Column(db.Float, nullable=False, default=0.0)
    import_duty_gbp = db.Column(db.Float, nullable=False, default=0.0)
    wholesale_cost_gbp = db.Column(db.Float, nullable=False, default=0.0)

    # Outlet price override; 0 means "sell at wholesale"
    direct_retail_online_store_price_gbp = db.Column(db.Float, nullable=False, default=0.0)

    effective_from = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    effective_to = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("costs", lazy="dynamic"))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def base_price(self) -> float:
        """Selling base: direct retail price when set, wholesale otherwise."""
        if self.direct_retail_online_store_price_gbp and self.direct_retail_online_store_price_gbp > 0:
            return self.direct_retail_online_store_price_gbp
        return self.wholesale_cost_gbp

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "exchange_rate": self.exchange_rate,
            "purchasing_cost_hkd": self.purchasing_cost_hkd,
            "purchasing_cost_gbp": self.purchasing_cost_gbp,
            "unit_weight_g": self.unit_weight_g,
            "purchasing_cost_buffer_percent": self.purchasing_cost_buffer_percent,
            "cost_buffer_gbp": self.cost_buffer_gbp,
            "adjusted_purchasing_cost_gbp": self.adjusted_purchasing_cost_gbp,
            "weight_g": self.weight_g,
            "weight_buffer_percent": self.weight_buffer_percent,
            "freight_rate_hkd_per_kg": self.freight_rate_hkd_per_kg,
            "freight_buffer_hkd": self.freight_buffer_hkd,
            "freight_hkd": self.freight_hkd,
            "freight_gbp": self.freight_gbp,
            "import_duty_percent": self.import_duty_percent,
            "import_duty_gbp": self.import_duty_gbp,
            "packaging_gbp": self.packaging_gbp,
            "wholesale_cost_gbp": self.wholesale_cost_gbp,
            "direct_retail_online_store_price_gbp": self.direct_retail_online_store_price_gbp,
            "effective_from": to_utc_z(self.effective_from),
            "effective_to": to_utc_z(self.effective_to) if self.effective_to else None,
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
        }


class ProductSectorDiscount(db.Model):
    """
    Per (product, sector) discount layered on top of Sector.discount_rate.

    Versioned exactly like ProductCost: one active row per pair.
    """
    __tablename__ = "product_sector_discounts"
    __table_args__ = (
        db.Index(
            "uq_product_sector_discounts_one_active",
            "product_id",
            "sector_id",
            unique=True,
            sqlite_where=db.text("effective_to IS NULL"),
            postgresql_where=db.text("effective_to IS NULL"),
        ),
        db.Index("ix_psd_product_sector_window", "product_id", "sector_id", "effective_from"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sector_id = db.Column(db.Integer, db.ForeignKey("sectors.id"), nullable=False, index=True)
    discount_percent = db.Column(db.Float, nullable=False, default=0.0)

    effective_from = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    effective_to = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("sector_discounts", lazy="dynamic"))
    sector = db.relationship("Sector")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sector_id": self.sector_id,
            "sector_name": self.sector.name if self.sector else None,
            "discount_percent": self.discount_percent,
            "effective_from": to_utc_z(self.effective_from),
            "effective_to": to_utc_z(self.effective_to) if self.effective_to else None,
            "version_id": self.version_id,
        }


class PriceHistory(db.Model):
    """
    Append-only price trail for reporting. Never read back into pricing.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        db.Index("ix_price_history_product_recorded", "product_id", "recorded_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sector_id = db.Column(db.Integer, db.ForeignKey("sectors.id"), nullable=True, index=True)
    wholesale_cost_gbp = db.Column(db.Float, nullable=False)  # base price at the time
    discount_percent = db.Column(db.Float, nullable=False, default=0.0)
    final_price = db.Column(db.Float, nullable=False)
    source = db.Column(db.String(32), nullable=False, default="cost")  # cost | discount | order
    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sector_id": self.sector_id,
            "wholesale_cost_gbp": self.wholesale_cost_gbp,
            "discount_percent": self.discount_percent,
            "final_price": self.final_price,
            "source": self.source,
            "recorded_at": to_utc_z(self.recorded_at),
        }


class CurrencyRate(db.Model):
    """Units of a foreign currency per 1 GBP."""
    __tablename__ = "currency_rates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    currency_code = db.Column(db.String(3), nullable=False, unique=True, index=True)
    rate_to_gbp = db.Column(db.Float, nullable=False)
    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_by = db.Column(db.String(16), nullable=False, default="manual")  # manual | api_sync

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "currency_code": self.currency_code,
            "rate_to_gbp": self.rate_to_gbp,
            "is_pinned": self.is_pinned,
            "last_updated": to_utc_z(self.last_updated),
            "updated_by": self.updated_by,
        }
