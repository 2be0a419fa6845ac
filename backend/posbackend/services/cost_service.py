# Overview: Landed-cost calculator and versioned ProductCost writes.

"""
Cost build-up for imported stock.

Suppliers invoice in HKD; everything we sell is priced in GBP. The
calculator turns purchase-side inputs into a wholesale cost:

    purchase_gbp   = purchase_hkd / exchange_rate
    adjusted       = purchase_gbp * (1 + buffer% / 100)
    weight_kg      = weight_g / 1000 * (1 + weight_buffer% / 100)
    freight_hkd    = freight_rate_per_kg * weight_kg + freight_buffer_hkd
    freight_gbp    = freight_hkd / exchange_rate
    duty_gbp       = adjusted * duty% / 100
    wholesale_gbp  = adjusted + freight_gbp + duty_gbp + packaging_gbp

A new cost is a new ProductCost row. The previously active row is closed
(effective_to = now) in the same transaction, under a row lock.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from ..extensions import db
from ..errors import NotFound
from ..models import Product, ProductCost
from ..validation import ValidationError, coerce_float, enforce_money
from posbackend.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry
from .price_history_service import record_price_history


@dataclass(frozen=True)
class CostInputs:
    exchange_rate: float
    purchasing_cost_hkd: float = 0.0
    purchasing_cost_buffer_percent: float = 0.0
    unit_weight_g: float = 0.0
    weight_g: float = 0.0
    weight_buffer_percent: float = 0.0
    freight_rate_hkd_per_kg: float = 0.0
    freight_buffer_hkd: float = 0.0
    import_duty_percent: float = 0.0
    packaging_gbp: float = 0.0
    direct_retail_online_store_price_gbp: float = 0.0


@dataclass(frozen=True)
class CostBreakdown:
    purchasing_cost_gbp: float
    cost_buffer_gbp: float
    adjusted_purchasing_cost_gbp: float
    freight_hkd: float
    freight_gbp: float
    import_duty_gbp: float
    wholesale_cost_gbp: float


_PERCENT_FIELDS = ("purchasing_cost_buffer_percent", "weight_buffer_percent", "import_duty_percent")


def parse_cost_inputs(payload: dict) -> CostInputs:
    """Build CostInputs from a JSON body; unknown keys are ignored."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if payload.get("exchange_rate") is None:
        raise ValidationError("Missing required fields: exchange_rate")

    values = {}
    for name in CostInputs.__dataclass_fields__:
        if payload.get(name) is not None:
            values[name] = coerce_float(payload[name], name)

    inputs = CostInputs(**values)
    validate_cost_inputs(inputs)
    return inputs


def validate_cost_inputs(inputs: CostInputs) -> None:
    if inputs.exchange_rate <= 0:
        raise ValidationError("exchange_rate must be > 0")
    for name, value in asdict(inputs).items():
        if name == "exchange_rate":
            continue
        if name in _PERCENT_FIELDS:
            if value < 0:
                raise ValidationError(f"{name} must be >= 0")
        else:
            enforce_money(value, name)


def calculate_cost(inputs: CostInputs) -> CostBreakdown:
    """Pure landed-cost computation; see module docstring for the formula."""
    if inputs.exchange_rate <= 0:
        raise ValidationError("exchange_rate must be > 0")

    purchasing_cost_gbp = inputs.purchasing_cost_hkd / inputs.exchange_rate
    cost_buffer_gbp = purchasing_cost_gbp * (inputs.purchasing_cost_buffer_percent / 100.0)
    adjusted = purchasing_cost_gbp + cost_buffer_gbp

    weight_kg = inputs.weight_g / 1000.0
    weight_with_buffer = weight_kg * (1 + inputs.weight_buffer_percent / 100.0)
    freight_hkd = inputs.freight_rate_hkd_per_kg * weight_with_buffer + inputs.freight_buffer_hkd
    freight_gbp = freight_hkd / inputs.exchange_rate

    import_duty_gbp = adjusted * (inputs.import_duty_percent / 100.0)

    wholesale = adjusted + freight_gbp + import_duty_gbp + inputs.packaging_gbp

    return CostBreakdown(
        purchasing_cost_gbp=purchasing_cost_gbp,
        cost_buffer_gbp=cost_buffer_gbp,
        adjusted_purchasing_cost_gbp=adjusted,
        freight_hkd=freight_hkd,
        freight_gbp=freight_gbp,
        import_duty_gbp=import_duty_gbp,
        wholesale_cost_gbp=wholesale,
    )


def get_current_cost(product_id: int, at: datetime | None = None) -> ProductCost | None:
    """
    Cost row effective at `at` (default now).

    Effective = effective_from <= t and (effective_to is null or > t). If
    several rows qualify the newest effective_from wins.
    """
    t = at or utcnow()
    return (
        db.session.query(ProductCost)
        .filter(
            ProductCost.product_id == product_id,
            ProductCost.effective_from <= t,
            db.or_(ProductCost.effective_to.is_(None), ProductCost.effective_to > t),
        )
        .order_by(ProductCost.effective_from.desc(), ProductCost.id.desc())
        .first()
    )


def list_cost_history(product_id: int) -> list[ProductCost]:
    return (
        db.session.query(ProductCost)
        .filter(ProductCost.product_id == product_id)
        .order_by(ProductCost.effective_from.desc(), ProductCost.id.desc())
        .all()
    )


def _require_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _close_active_costs(product_id: int, now: datetime) -> ProductCost | None:
    """Lock and close the active row(s); returns the most recent one closed."""
    active = (
        lock_for_update(
            db.session.query(ProductCost).filter(
                ProductCost.product_id == product_id,
                ProductCost.effective_to.is_(None),
            )
        )
        .order_by(ProductCost.effective_from.desc(), ProductCost.id.desc())
        .all()
    )
    for row in active:
        row.effective_to = now
    # Flush before the insert so the one-active-row index never sees two.
    db.session.flush()
    return active[0] if active else None


def _new_cost_row(product_id: int, inputs: CostInputs, breakdown: CostBreakdown, now: datetime,
                  user_id: int | None) -> ProductCost:
    cost = ProductCost(
        product_id=product_id,
        effective_from=now,
        effective_to=None,
        created_by_user_id=user_id,
        **asdict(inputs),
        **asdict(breakdown),
    )
    db.session.add(cost)
    return cost


def set_product_cost(product_id: int, inputs: CostInputs, user_id: int | None = None) -> ProductCost:
    """
    Calculate and activate a new cost version for a product.

    One transaction: close the active row, insert the new one, append a
    PriceHistory row (wholesale, 0%, wholesale).
    """
    validate_cost_inputs(inputs)
    breakdown = calculate_cost(inputs)

    def _op():
        begin_write()
        _require_product(product_id)
        now = utcnow()
        _close_active_costs(product_id, now)
        cost = _new_cost_row(product_id, inputs, breakdown, now, user_id)
        record_price_history(
            product_id=product_id,
            sector_id=None,
            base_price=breakdown.wholesale_cost_gbp,
            discount_percent=0.0,
            final_price=breakdown.wholesale_cost_gbp,
            source="cost",
        )
        db.session.commit()
        return cost

    return run_with_retry(_op)


def update_product_cost_simple(
    product_id: int,
    *,
    wholesale_cost_gbp: float | None = None,
    direct_retail_online_store_price_gbp: float | None = None,
    user_id: int | None = None,
) -> ProductCost:
    """
    Quick edit of wholesale cost and/or retail price.

    Always produces a new version: the inputs of the previous active row are
    carried over (or a minimal row when the product has never been costed)
    and the two outputs are overridden. PriceHistory is appended when the
    wholesale cost is part of the edit.
    """
    if wholesale_cost_gbp is None and direct_retail_online_store_price_gbp is None:
        raise ValidationError("wholesale_cost_gbp or direct_retail_online_store_price_gbp is required")
    enforce_money(wholesale_cost_gbp, "wholesale_cost_gbp")
    enforce_money(direct_retail_online_store_price_gbp, "direct_retail_online_store_price_gbp")

    def _op():
        begin_write()
        _require_product(product_id)
        now = utcnow()
        previous = _close_active_costs(product_id, now)

        if previous is not None:
            inputs = CostInputs(**{name: getattr(previous, name) for name in CostInputs.__dataclass_fields__})
            breakdown = CostBreakdown(**{name: getattr(previous, name) for name in CostBreakdown.__dataclass_fields__})
        else:
            inputs = CostInputs(exchange_rate=1.0, unit_weight_g=1.0, weight_g=1.0)
            breakdown = calculate_cost(inputs)

        if direct_retail_online_store_price_gbp is not None:
            inputs = CostInputs(**{
                **asdict(inputs),
                "direct_retail_online_store_price_gbp": direct_retail_online_store_price_gbp,
            })
        if wholesale_cost_gbp is not None:
            breakdown = CostBreakdown(**{**asdict(breakdown), "wholesale_cost_gbp": wholesale_cost_gbp})

        cost = _new_cost_row(product_id, inputs, breakdown, now, user_id)

        if wholesale_cost_gbp is not None:
            record_price_history(
                product_id=product_id,
                sector_id=None,
                base_price=wholesale_cost_gbp,
                discount_percent=0.0,
                final_price=wholesale_cost_gbp,
                source="cost",
            )
        db.session.commit()
        return cost

    return run_with_retry(_op)
