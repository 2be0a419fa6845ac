# Overview: Per-sector price catalog built from retail prices and discount rates.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import Product, Sector
from posbackend.time_utils import quarter_label, to_utc_z, utcnow
from .cost_service import get_current_cost
from .discount_service import DiscountRates, get_effective_discount
from .pricing_service import apply_rates


def generate_catalog(sector_id: int) -> dict:
    """
    Catalog for one sector.

    Only active products with a direct retail price above 0 are listed.
    The sector rate is applied even when the sector is inactive: a catalog is
    requested for a sector explicitly.
    """
    sector = db.session.get(Sector, sector_id)
    if sector is None:
        raise NotFound("Sector not found")

    now = utcnow()
    items = []
    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()
    for product in products:
        cost = get_current_cost(product.id, now)
        if cost is None or cost.direct_retail_online_store_price_gbp <= 0:
            continue

        override = get_effective_discount(product.id, sector.id, now)
        rates = DiscountRates(
            sector_rate=sector.discount_rate or 0.0,
            product_sector_rate=override.discount_percent if override else 0.0,
        )
        retail = cost.direct_retail_online_store_price_gbp
        items.append({
            "product": product.to_dict(),
            "direct_retail_online_store_price": retail,
            "sector_discount_rate": rates.sector_rate,
            "product_discount_percent": rates.product_sector_rate,
            "total_discount_percent": rates.combined_rate,
            "final_price": apply_rates(retail, rates),
        })

    items.sort(key=lambda item: ((item["product"]["category"] or ""), item["product"]["name"]))

    return {
        "sector": sector.to_dict(),
        "quarter": quarter_label(now),
        "items": items,
        "generated_at": to_utc_z(now),
    }
