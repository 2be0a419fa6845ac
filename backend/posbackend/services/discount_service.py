# Overview: Sector discount resolution and versioned ProductSectorDiscount writes.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..errors import NotFound
from ..models import Product, ProductSectorDiscount, Sector
from ..validation import enforce_percentage
from posbackend.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry
from .price_history_service import record_price_history


@dataclass(frozen=True)
class DiscountRates:
    """
    Rates that apply to one product for one sector.

    combined_rate is the additive figure shown to staff and printed on
    receipts. Prices apply the two rates one after the other, see
    pricing_service.apply_rates.
    """
    sector_rate: float = 0.0
    product_sector_rate: float = 0.0

    @property
    def combined_rate(self) -> float:
        return self.sector_rate + self.product_sector_rate

    def to_dict(self) -> dict:
        return {
            "sector_rate": self.sector_rate,
            "product_sector_rate": self.product_sector_rate,
            "combined_rate": self.combined_rate,
        }


NO_DISCOUNT = DiscountRates()


def _effective_filter(model, t: datetime):
    return db.and_(
        model.effective_from <= t,
        db.or_(model.effective_to.is_(None), model.effective_to > t),
    )


def get_effective_discount(product_id: int, sector_id: int, at: datetime | None = None) -> ProductSectorDiscount | None:
    """Latest effective override row for (product, sector); tolerates duplicates."""
    t = at or utcnow()
    return (
        db.session.query(ProductSectorDiscount)
        .filter(
            ProductSectorDiscount.product_id == product_id,
            ProductSectorDiscount.sector_id == sector_id,
            _effective_filter(ProductSectorDiscount, t),
        )
        .order_by(ProductSectorDiscount.effective_from.desc(), ProductSectorDiscount.id.desc())
        .first()
    )


def resolve_discount(product_id: int, sector_id: int | None = None, at: datetime | None = None) -> DiscountRates:
    """
    Resolve the discount rates for a product, optionally for a sector.

    No sector, an unknown sector or an inactive sector all resolve to 0 for
    the sector part; a missing override resolves to 0 for the product part.
    """
    if sector_id is None:
        return NO_DISCOUNT

    sector = db.session.get(Sector, sector_id)
    sector_rate = sector.discount_rate if sector is not None and sector.is_active else 0.0

    override = get_effective_discount(product_id, sector_id, at)
    product_rate = override.discount_percent if override is not None else 0.0

    return DiscountRates(sector_rate=sector_rate or 0.0, product_sector_rate=product_rate or 0.0)


def list_active_discounts(product_id: int) -> list[ProductSectorDiscount]:
    return (
        db.session.query(ProductSectorDiscount)
        .filter(
            ProductSectorDiscount.product_id == product_id,
            _effective_filter(ProductSectorDiscount, utcnow()),
        )
        .order_by(ProductSectorDiscount.sector_id.asc())
        .all()
    )


def set_product_discount(
    product_id: int,
    sector_id: int,
    discount_percent: float,
    user_id: int | None = None,
) -> ProductSectorDiscount:
    """
    Activate a new product-sector discount version.

    Closes the active row for the pair under a lock, inserts the new one and
    appends a PriceHistory row with the resulting sector price, all in one
    transaction.
    """
    enforce_percentage(discount_percent, "discount_percent")

    def _op():
        # Imported here: pricing_service depends on this module.
        from .pricing_service import apply_rates, resolve_base_price

        begin_write()
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        sector = db.session.get(Sector, sector_id)
        if sector is None:
            raise NotFound("Sector not found")

        now = utcnow()
        active = lock_for_update(
            db.session.query(ProductSectorDiscount).filter(
                ProductSectorDiscount.product_id == product_id,
                ProductSectorDiscount.sector_id == sector_id,
                ProductSectorDiscount.effective_to.is_(None),
            )
        ).all()
        for row in active:
            row.effective_to = now
        db.session.flush()

        discount = ProductSectorDiscount(
            product_id=product_id,
            sector_id=sector_id,
            discount_percent=discount_percent,
            effective_from=now,
            effective_to=None,
            created_by_user_id=user_id,
        )
        db.session.add(discount)

        base_price = resolve_base_price(product_id, at=now, required=False) or 0.0
        rates = DiscountRates(
            sector_rate=sector.discount_rate if sector.discount_rate > 0 else 0.0,
            product_sector_rate=discount_percent,
        )
        record_price_history(
            product_id=product_id,
            sector_id=sector_id,
            base_price=base_price,
            discount_percent=rates.combined_rate,
            final_price=apply_rates(base_price, rates),
            source="discount",
        )
        db.session.commit()
        return discount

    return run_with_retry(_op)
