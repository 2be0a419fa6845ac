# Overview: POS device registry; registration, store assignment and till-facing lookups.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import POSDevice, Product, Store, User, user_stores
from ..validation import ConflictError, ValidationError
from .cost_service import get_current_cost


def normalize_device_code(code: str | None) -> str:
    """'abc' and '{abc}' both become '{abc}', the stored form."""
    code = (code or "").strip()
    if code.startswith("{") and code.endswith("}"):
        code = code[1:-1].strip()
    if not code:
        raise ValidationError("device_code is required")
    return "{" + code + "}"


def _require_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFound("Store not found")
    return store


def find_device(code: str, *, active_only: bool = True) -> POSDevice | None:
    query = db.session.query(POSDevice).filter(POSDevice.device_code == normalize_device_code(code))
    if active_only:
        query = query.filter(POSDevice.is_active.is_(True))
    return query.first()


def require_active_device(code: str) -> POSDevice:
    device = find_device(code)
    if device is None:
        raise NotFound("Device not found")
    return device


def register_device(device_code: str, store_id: int, device_name: str | None = None) -> POSDevice:
    normalized = normalize_device_code(device_code)
    if find_device(normalized, active_only=False) is not None:
        raise ConflictError("Device already registered")
    _require_store(store_id)

    device = POSDevice(
        device_code=normalized,
        store_id=store_id,
        device_name=device_name,
        is_active=True,
    )
    db.session.add(device)
    db.session.commit()
    return device


def configure_device(device_code: str, store_id: int, device_name: str | None = None) -> tuple[POSDevice, bool]:
    """Create the device or move it to another store. Returns (device, created)."""
    normalized = normalize_device_code(device_code)
    _require_store(store_id)

    device = find_device(normalized, active_only=False)
    created = device is None
    if created:
        device = POSDevice(device_code=normalized, store_id=store_id, device_name=device_name, is_active=True)
        db.session.add(device)
    else:
        device.store_id = store_id
        if device_name:
            device.device_name = device_name
    db.session.commit()
    return device, created


def users_for_device(device_code: str) -> list[User]:
    """Active users of the device's store who can log in with a PIN."""
    device = require_active_device(device_code)
    return (
        db.session.query(User)
        .join(user_stores, user_stores.c.user_id == User.id)
        .filter(
            user_stores.c.store_id == device.store_id,
            User.is_active.is_(True),
            User.pin_hash.isnot(None),
        )
        .order_by(User.username.asc())
        .all()
    )


def products_for_device(device_code: str) -> list[dict]:
    """Active products with the undiscounted till price (0 when never costed)."""
    require_active_device(device_code)
    result = []
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc())
        .all()
    )
    for product in products:
        cost = get_current_cost(product.id)
        data = product.to_dict()
        data["current_cost"] = cost.to_dict() if cost else None
        data["pos_price"] = cost.base_price if cost else 0.0
        result.append(data)
    return result


def list_devices(store_id: int | None = None) -> list[POSDevice]:
    query = db.session.query(POSDevice)
    if store_id is not None:
        _require_store(store_id)
        query = query.filter(POSDevice.store_id == store_id)
    return query.order_by(POSDevice.id.asc()).all()


def get_device(device_id: int) -> POSDevice:
    device = db.session.get(POSDevice, device_id)
    if device is None:
        raise NotFound("Device not found")
    return device
