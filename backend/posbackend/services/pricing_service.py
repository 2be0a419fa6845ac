# Overview: Pricing engine; turns base prices and discount rates into line and order totals.

"""
Sector pricing.

The two discount rates are shown to staff as their sum (S + P) but applied
one after the other:

    unit_price    = base * (1 - S/100) * (1 - P/100)
    line_discount = base * (S + P)/100 * quantity
    line_total    = unit_price * quantity

Order totals are built from the additive figures, so total = subtotal -
discount and the receipt adds up line by line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..extensions import db
from ..errors import CostNotFound, NotFound
from ..models import Product
from ..validation import ValidationError, coerce_float, coerce_int
from .cost_service import get_current_cost
from .discount_service import DiscountRates, resolve_discount


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: float
    base_price: float
    unit_price: float
    discount_percent: float
    discount_amount: float
    line_total: float

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "base_price": self.base_price,
            "unit_price": self.unit_price,
            "discount_percent": self.discount_percent,
            "discount_amount": self.discount_amount,
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class OrderQuote:
    sector_id: int | None
    lines: list[PricedLine] = field(default_factory=list)

    @property
    def subtotal(self) -> float:
        return sum(line.base_price * line.quantity for line in self.lines)

    @property
    def discount_amount(self) -> float:
        return sum(line.discount_amount for line in self.lines)

    @property
    def total_amount(self) -> float:
        return self.subtotal - self.discount_amount

    def to_dict(self) -> dict:
        return {
            "sector_id": self.sector_id,
            "items": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
        }


def apply_rates(base_price: float, rates: DiscountRates) -> float:
    price_after_sector = base_price * (1 - rates.sector_rate / 100.0)
    return price_after_sector * (1 - rates.product_sector_rate / 100.0)


def resolve_base_price(product_id: int, at: datetime | None = None, required: bool = True) -> float | None:
    """Direct retail price when > 0, else wholesale cost, from the active cost row."""
    cost = get_current_cost(product_id, at)
    if cost is None:
        if required:
            raise CostNotFound(
                "Product has no active cost",
                details={"product_id": product_id},
            )
        return None
    return cost.base_price


def price_line(product_id: int, quantity: float, sector_id: int | None = None,
               at: datetime | None = None) -> PricedLine:
    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be > 0")

    base_price = resolve_base_price(product_id, at)
    rates = resolve_discount(product_id, sector_id, at)

    return PricedLine(
        product_id=product_id,
        quantity=quantity,
        base_price=base_price,
        unit_price=apply_rates(base_price, rates),
        discount_percent=rates.combined_rate,
        discount_amount=base_price * (rates.combined_rate / 100.0) * quantity,
        line_total=apply_rates(base_price, rates) * quantity,
    )


def parse_lines(items) -> list[tuple[int, float]]:
    """Validate a JSON `items` array into (product_id, quantity) pairs."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("product_id") is None or item.get("quantity") is None:
            raise ValidationError(f"items[{index}] requires product_id and quantity")
        product_id = coerce_int(item["product_id"], f"items[{index}].product_id")
        quantity = coerce_float(item["quantity"], f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        parsed.append((product_id, quantity))
    return parsed


def quote_order(lines: list[tuple[int, float]], sector_id: int | None = None,
                at: datetime | None = None) -> OrderQuote:
    """
    Price a basket without writing anything.

    Every product must exist and be active; inactive products are treated
    as missing so they cannot be sold.
    """
    priced = []
    for product_id, quantity in lines:
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        priced.append(price_line(product_id, quantity, sector_id, at))
    return OrderQuote(sector_id=sector_id, lines=priced)
