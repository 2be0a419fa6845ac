# Overview: Product categories; a category is just the distinct Product.category value.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import ValidationError

CATEGORY_MAX_LENGTH = 128


def _clean_name(name: str | None, field: str = "name") -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    if len(cleaned) > CATEGORY_MAX_LENGTH:
        raise ValidationError(f"{field} exceeds max length {CATEGORY_MAX_LENGTH}")
    return cleaned


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(
            Product.category.isnot(None),
            Product.category != "",
            Product.is_active.is_(True),
        )
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def create_category(name: str) -> dict:
    """
    Categories have no table of their own; one exists once a product uses it.
    This only validates the name and reports whether it is already in use.
    """
    name = _clean_name(name)
    in_use = db.session.query(Product.id).filter(Product.category == name).first() is not None
    return {"category": name, "exists": in_use}


def delete_category(name: str) -> int:
    """Blank the category on every product carrying it; returns the count."""
    name = _clean_name(name)
    updated = (
        db.session.query(Product)
        .filter(Product.category == name)
        .update({Product.category: ""}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def rename_category(old_name: str, new_name: str) -> int:
    old_name = _clean_name(old_name)
    new_name = _clean_name(new_name, "new_name")
    updated = (
        db.session.query(Product)
        .filter(Product.category == old_name)
        .update({Product.category: new_name}, synchronize_session=False)
    )
    db.session.commit()
    return updated
