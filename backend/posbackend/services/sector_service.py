# Overview: Customer sectors and their base discount rates.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import Sector
from ..validation import ConflictError, ModelValidationPolicy, enforce_rules_sector, validate_payload


SECTOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "discount_rate", "is_active"},
    required_on_create={"name"},
)


def parse_sector_payload(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Sector, payload=payload, policy=SECTOR_POLICY, partial=partial)
    enforce_rules_sector(patch)
    return patch


def _check_name_unique(name: str, sector_id: int | None = None) -> None:
    query = db.session.query(Sector).filter(Sector.name == name)
    if sector_id is not None:
        query = query.filter(Sector.id != sector_id)
    if query.first() is not None:
        raise ConflictError("Sector name already exists.")


def list_sectors() -> list[Sector]:
    return (
        db.session.query(Sector)
        .filter(Sector.is_active.is_(True))
        .order_by(Sector.name.asc())
        .all()
    )


def get_sector(sector_id: int) -> Sector:
    sector = db.session.get(Sector, sector_id)
    if sector is None:
        raise NotFound("Sector not found")
    return sector


def create_sector(*, patch: dict) -> Sector:
    _check_name_unique(patch["name"])
    sector = Sector(
        name=patch["name"],
        description=patch.get("description"),
        discount_rate=patch.get("discount_rate") or 0.0,
        is_active=patch.get("is_active", True),
    )
    db.session.add(sector)
    db.session.commit()
    return sector


def update_sector(sector_id: int, *, patch: dict) -> Sector:
    sector = get_sector(sector_id)
    if "name" in patch:
        _check_name_unique(patch["name"], sector_id)
    for k, v in patch.items():
        setattr(sector, k, v)
    db.session.commit()
    return sector


def delete_sector(sector_id: int) -> Sector:
    """Soft delete; an inactive sector contributes 0 to discount resolution."""
    sector = get_sector(sector_id)
    sector.is_active = False
    db.session.commit()
    return sector
