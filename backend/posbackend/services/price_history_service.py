# Overview: Append-only price trail used by cost, discount and order services.

from __future__ import annotations

from ..extensions import db
from ..models import PriceHistory

HISTORY_LIMIT = 100


def record_price_history(
    *,
    product_id: int,
    sector_id: int | None,
    base_price: float,
    discount_percent: float,
    final_price: float,
    source: str,
) -> PriceHistory:
    """Add a PriceHistory row to the current transaction (no commit)."""
    entry = PriceHistory(
        product_id=product_id,
        sector_id=sector_id,
        wholesale_cost_gbp=base_price,
        discount_percent=discount_percent,
        final_price=final_price,
        source=source,
    )
    db.session.add(entry)
    return entry


def list_price_history(product_id: int, sector_id: int | None = None, limit: int = HISTORY_LIMIT) -> list[PriceHistory]:
    query = db.session.query(PriceHistory).filter(PriceHistory.product_id == product_id)
    if sector_id is not None:
        query = query.filter(PriceHistory.sector_id == sector_id)
    return query.order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc()).limit(limit).all()
