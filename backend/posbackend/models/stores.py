from __future__ import annotations

from ..extensions import db
from posbackend.time_utils import to_utc_z


class Store(db.Model):
    """
    Physical shop. Owns its Stock rows, POS devices and orders.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class POSDevice(db.Model):
    """
    Till / tablet registered to a store.

    device_code is stored wrapped in braces ("{ABC123}") because that is how
    the handheld firmware reports it; lookups normalise both forms.
    """
    __tablename__ = "pos_devices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    device_code = db.Column(db.String(128), nullable=False, unique=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    device_name = db.Column(db.String(128), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("devices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_code": self.device_code,
            "store_id": self.store_id,
            "store": self.store.to_dict() if self.store else None,
            "device_name": self.device_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
