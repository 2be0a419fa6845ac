# backend/posbackend/services/products_service.py
"""
Product catalog maintenance.

Products are never hard-deleted: orders, costs and stock rows keep pointing
at them, so delete only flips is_active.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import Product
from ..validation import ConflictError, ModelValidationPolicy, enforce_rules_product, validate_payload
from .cost_service import get_current_cost
from .discount_service import list_active_discounts

PRODUCT_MUTABLE_FIELDS = {
    "name", "name_chinese", "barcode", "sku", "category", "image_url", "unit_type", "is_active",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name"},
)


def parse_product_payload(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_sku_unique(sku: str | None, product_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product).filter(Product.sku == sku)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first() is not None:
        raise ConflictError("SKU already exists.")


def get_product(product_id: int, *, active_only: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or (active_only and not product.is_active):
        raise NotFound("Product not found")
    return product


def product_with_pricing(product: Product, *, include_discounts: bool = False) -> dict:
    data = product.to_dict()
    cost = get_current_cost(product.id)
    data["current_cost"] = cost.to_dict() if cost else None
    if include_discounts:
        data["discounts"] = [d.to_dict() for d in list_active_discounts(product.id)]
    return data


def list_products(*, category: str | None = None, search: str | None = None) -> list[dict]:
    """Active products, optionally narrowed by category or a name/barcode/SKU search."""
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Product.name.ilike(like),
            Product.name_chinese.ilike(like),
            Product.barcode.ilike(like),
            Product.sku.ilike(like),
        ))
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return [product_with_pricing(p) for p in products]


def create_product(*, patch: dict) -> Product:
    _check_sku_unique(patch.get("sku"))

    p = Product()
    apply_product_patch(p, patch)
    if p.unit_type is None:
        p.unit_type = "quantity"

    db.session.add(p)
    db.session.commit()
    return p


def update_product(product_id: int, *, patch: dict) -> Product:
    p = get_product(product_id)
    if "sku" in patch:
        _check_sku_unique(patch["sku"], product_id)
    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(product_id: int) -> Product:
    p = get_product(product_id)
    p.is_active = False
    db.session.commit()
    return p
