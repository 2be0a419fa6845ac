from __future__ import annotations

from posbackend.extensions import db
from posbackend.models import Store
from posbackend.validation import ConflictError, ValidationError
from posbackend.services.concurrency import run_with_retry


def create_store(name: str, address: str | None = None) -> Store:
    def _op():
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Store name is required")

        if db.session.query(Store).filter(Store.name == cleaned).first():
            raise ConflictError("Store name already exists.")

        store = Store(name=cleaned, address=(address or "").strip() or None)

        db.session.add(store)
        db.session.commit()
        return store

    return run_with_retry(_op)


def list_stores(active_only: bool = True) -> list[Store]:
    query = db.session.query(Store)
    if active_only:
        query = query.filter(Store.is_active.is_(True))
    return query.order_by(Store.name.asc()).all()
