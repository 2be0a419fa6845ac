"""
Restock orders: initiated -> in_transit -> received, cancellable while open.
"""

import pytest

from posbackend.extensions import db
from posbackend.models import AuditLog

from conftest import stock_quantity


@pytest.fixture
def restock(client, supervisor_headers, store, make_product, set_stock):
    """An initiated restock of 24 jars of chilli crisp, 6 already on the shelf."""
    product = make_product("Chilli Crisp", retail=6.0)
    set_stock(product, store, 6)
    resp = client.post("/api/v1/restock-orders", json={
        "store_id": store.id,
        "items": [{"product_id": product.id, "quantity": 24}],
        "notes": "Autumn shipment",
    }, headers=supervisor_headers)
    assert resp.status_code == 201
    return product, resp.json


def test_create(restock):
    product, order = restock
    assert order["status"] == "initiated"
    assert order["notes"] == "Autumn shipment"
    assert [(i["product_id"], i["quantity"]) for i in order["items"]] == [(product.id, 24)]


def test_create_requires_store(client, supervisor_headers, make_product):
    product = make_product("Lotus Root", retail=2.0)
    resp = client.post("/api/v1/restock-orders", json={
        "items": [{"product_id": product.id, "quantity": 1}],
    }, headers=supervisor_headers)
    assert resp.status_code == 400


def test_tracking_moves_to_in_transit(client, supervisor_headers, restock):
    _product, order = restock

    resp = client.put(f"/api/v1/restock-orders/{order['id']}/tracking",
                      json={"tracking_number": "SF1234567"}, headers=supervisor_headers)

    assert resp.status_code == 200
    assert resp.json["status"] == "in_transit"
    assert resp.json["tracking_number"] == "SF1234567"
    assert resp.json["shipped_at"] is not None


def test_incoming_quantity_shown_with_stock(client, cashier_headers, store, restock):
    product, _order = restock

    resp = client.get(f"/api/v1/stock?store_id={store.id}", headers=cashier_headers)

    row = next(r for r in resp.json["stock"] if r["product_id"] == product.id)
    assert row["quantity"] == 6
    assert row["incoming_quantity"] == 24


def test_receive_books_stock(client, supervisor_headers, store, restock):
    product, order = restock

    resp = client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=supervisor_headers)

    assert resp.status_code == 200
    assert resp.json["status"] == "received"
    assert resp.json["received_at"] is not None
    assert [a["status"] for a in resp.json["audit"]] == ["applied"]
    assert stock_quantity(product.id, store.id) == 30

    db.session.expire_all()
    entry = db.session.query(AuditLog).filter_by(action="stock_update").one()
    assert entry.changes_dict["reason"] == "restock_order_received"
    assert entry.changes_dict["added_quantity"] == 24
    assert entry.changes_dict["restock_order_id"] == order["id"]


def test_receive_creates_missing_stock_row(client, supervisor_headers, store, other_store, make_product):
    product = make_product("Black Beans", retail=2.5)
    created = client.post("/api/v1/restock-orders", json={
        "store_id": other_store.id,
        "items": [{"product_id": product.id, "quantity": 10}],
    }, headers=supervisor_headers).json

    client.put(f"/api/v1/restock-orders/{created['id']}/receive", headers=supervisor_headers)

    assert stock_quantity(product.id, other_store.id) == 10


def test_cannot_receive_twice(client, supervisor_headers, store, restock):
    product, order = restock
    client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=supervisor_headers)

    again = client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=supervisor_headers)

    assert again.status_code == 409
    assert stock_quantity(product.id, store.id) == 30


def test_cancel_open_order(client, supervisor_headers, store, restock):
    product, order = restock

    resp = client.put(f"/api/v1/restock-orders/{order['id']}/cancel", headers=supervisor_headers)

    assert resp.status_code == 200
    assert resp.json["status"] == "cancelled"
    assert stock_quantity(product.id, store.id) == 6

    received = client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=supervisor_headers)
    assert received.status_code == 409


def test_cannot_cancel_received(client, supervisor_headers, restock):
    _product, order = restock
    client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=supervisor_headers)

    resp = client.put(f"/api/v1/restock-orders/{order['id']}/cancel", headers=supervisor_headers)

    assert resp.status_code == 409
    assert resp.json["status"] == "received"


def test_list_by_status(client, supervisor_headers, restock):
    _product, order = restock

    open_orders = client.get("/api/v1/restock-orders?status=initiated", headers=supervisor_headers)
    received = client.get("/api/v1/restock-orders?status=received", headers=supervisor_headers)

    assert [o["id"] for o in open_orders.json["restock_orders"]] == [order["id"]]
    assert received.json["restock_orders"] == []


def test_cashier_cannot_receive(client, cashier_headers, restock):
    _product, order = restock
    resp = client.put(f"/api/v1/restock-orders/{order['id']}/receive", headers=cashier_headers)
    assert resp.status_code == 403
