"""
Order lifecycle tests.

Verifies:
- Creation prices lines, decrements stock and prints check codes
- pending -> paid -> completed; only pending orders cancel
- Cancellation gives stock back
- Pickup guards: check codes, payment state, one pickup per order
"""

import re

import pytest

from posbackend.extensions import db
from posbackend.models import AuditLog, Order
from posbackend.services import order_service
from posbackend.services.order_service import generate_check_code

from conftest import stock_quantity


ORDER_NUMBER = re.compile(r"^ORD-\d{8}-\d{4}$")


def _signed_64(value: int) -> int:
    value %= 1 << 64
    return value - (1 << 64) if value >= 1 << 63 else value


def _reference_check_code(text: str) -> str:
    """Same polynomial hash computed as one big sum before wrapping."""
    n = len(text)
    total = sum(ord(ch) * 31 ** (n - 1 - i) for i, ch in enumerate(text))
    return f"{abs(_signed_64(total)) % 10000:04d}"


@pytest.fixture
def stocked(store, make_product, set_stock):
    """Two products on the shelf: 10 x 10.00 and 5 x 50.00."""
    a = make_product("Chopsticks", retail=10.0)
    b = make_product("Wok", retail=50.0)
    set_stock(a, store, 10)
    set_stock(b, store, 5)
    return a, b


def _create(client, headers, store, items, **extra):
    return client.post("/api/v1/orders", json={
        "store_id": store.id,
        "items": items,
        **extra,
    }, headers=headers)


class TestCheckCodes:

    @pytest.mark.parametrize("number,total,kind", [
        ("ORD-20250101-0001", 72.5, "invoice"),
        ("ORD-20250101-0001", 72.5, "receipt"),
        ("ORD-20991231-9999", 123456.78, "invoice"),
        ("X", 0.0, "receipt"),
    ])
    def test_matches_reference_hash(self, number, total, kind):
        code = generate_check_code(number, total, kind)

        assert re.fullmatch(r"\d{4}", code)
        assert code == _reference_check_code(f"{number}-{total:.2f}-{kind}")

    def test_deterministic(self):
        first = generate_check_code("ORD-20250101-0001", 10.0, "invoice")
        assert first == generate_check_code("ORD-20250101-0001", 10.0, "invoice")

    def test_total_rounded_to_pence(self):
        assert generate_check_code("ORD-1", 10.001, "invoice") == generate_check_code("ORD-1", 10.0, "invoice")


class TestCreateOrder:

    def test_create_prices_and_decrements(self, client, cashier_headers, store, stocked):
        a, b = stocked

        resp = _create(client, cashier_headers, store, [
            {"product_id": a.id, "quantity": 3},
            {"product_id": b.id, "quantity": 1},
        ])

        assert resp.status_code == 201
        body = resp.json
        assert ORDER_NUMBER.match(body["order_number"])
        assert body["status"] == "pending"
        assert body["subtotal"] == pytest.approx(80.0)
        assert body["discount_amount"] == pytest.approx(0.0)
        assert body["total_amount"] == pytest.approx(80.0)
        assert len(body["items"]) == 2
        assert body["invoice_check_code"] == generate_check_code(body["order_number"], 80.0, "invoice")
        assert body["receipt_check_code"] == generate_check_code(body["order_number"], 80.0, "receipt")
        assert body["qr_code_data"]["order_number"] == body["order_number"]
        assert [e["status"] for e in body["stock_effects"]] == ["applied", "applied"]

        assert stock_quantity(a.id, store.id) == 7
        assert stock_quantity(b.id, store.id) == 4

    def test_sector_discount_applied(self, client, cashier_headers, store, stocked, sector):
        a, _b = stocked

        resp = _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 2}],
                       sector_id=sector.id)

        assert resp.status_code == 201
        assert resp.json["subtotal"] == pytest.approx(20.0)
        assert resp.json["discount_amount"] == pytest.approx(2.0)
        assert resp.json["total_amount"] == pytest.approx(18.0)
        assert resp.json["items"][0]["unit_price"] == pytest.approx(9.0)

    def test_stock_clamps_at_zero(self, client, cashier_headers, store, make_product, set_stock):
        product = make_product("Last Teapot", retail=30.0)
        set_stock(product, store, 1)

        resp = _create(client, cashier_headers, store, [{"product_id": product.id, "quantity": 3}])

        assert resp.status_code == 201
        assert stock_quantity(product.id, store.id) == 0

    def test_missing_stock_row_does_not_block_sale(self, client, cashier_headers, store, make_product):
        product = make_product("Special Order", retail=99.0)

        resp = _create(client, cashier_headers, store, [{"product_id": product.id, "quantity": 1}])

        assert resp.status_code == 201
        effect = resp.json["stock_effects"][0]
        assert effect["status"] == "skipped"
        assert effect["reason"] == "no stock row"
        assert stock_quantity(product.id, store.id) is None

    def test_unpriced_line_rolls_back_everything(self, client, cashier_headers, store, stocked, make_product):
        a, _b = stocked
        unpriced = make_product("No Cost Yet")

        resp = _create(client, cashier_headers, store, [
            {"product_id": a.id, "quantity": 2},
            {"product_id": unpriced.id, "quantity": 1},
        ])

        assert resp.status_code == 422
        db.session.expire_all()
        assert db.session.query(Order).count() == 0
        assert stock_quantity(a.id, store.id) == 10

    def test_unknown_product(self, client, cashier_headers, store):
        resp = _create(client, cashier_headers, store, [{"product_id": 987654, "quantity": 1}])
        assert resp.status_code == 404

    def test_empty_items_rejected(self, client, cashier_headers, store):
        resp = _create(client, cashier_headers, store, [])
        assert resp.status_code == 400

    def test_order_numbers_unique(self, client, cashier_headers, store, stocked):
        a, _b = stocked
        numbers = {
            _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 1}]).json["order_number"]
            for _ in range(3)
        }
        assert len(numbers) == 3

    def test_store_from_till_device(self, client, db_session, cashier, store, stocked):
        from posbackend.services import device_service, session_service
        from conftest import auth_headers

        device_service.register_device("till-01", store.id, "Front till")
        _session, token = session_service.create_session(cashier.id, device_code="{till-01}")
        a, _b = stocked

        resp = client.post("/api/v1/orders", json={
            "items": [{"product_id": a.id, "quantity": 1}],
        }, headers=auth_headers(token))

        assert resp.status_code == 201
        assert resp.json["store_id"] == store.id
        assert resp.json["device_code"] == "{till-01}"


class TestTransitions:

    @pytest.fixture
    def order(self, client, cashier_headers, store, stocked):
        a, b = stocked
        resp = _create(client, cashier_headers, store, [
            {"product_id": a.id, "quantity": 3},
            {"product_id": b.id, "quantity": 1},
        ])
        assert resp.status_code == 201
        return resp.json

    def test_pay_then_complete(self, client, cashier_headers, order):
        paid = client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)
        assert paid.status_code == 200
        assert paid.json["status"] == "paid"
        assert paid.json["paid_at"] is not None

        done = client.put(f"/api/v1/orders/{order['id']}/complete", headers=cashier_headers)
        assert done.status_code == 200
        assert done.json["status"] == "completed"
        assert done.json["completed_at"] is not None

    def test_paying_twice_is_allowed(self, client, cashier_headers, order):
        client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)
        again = client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)
        assert again.status_code == 200
        assert again.json["status"] == "paid"

    def test_cannot_complete_unpaid(self, client, cashier_headers, order):
        resp = client.put(f"/api/v1/orders/{order['id']}/complete", headers=cashier_headers)
        assert resp.status_code == 409
        assert resp.json["status"] == "pending"

    def test_cancel_restores_stock(self, client, supervisor_headers, store, stocked, order):
        a, b = stocked

        resp = client.put(f"/api/v1/orders/{order['id']}/cancel", headers=supervisor_headers)

        assert resp.status_code == 200
        assert resp.json["status"] == "cancelled"
        assert [e["effect"] for e in resp.json["stock_effects"]] == ["stock_restore", "stock_restore"]
        assert stock_quantity(a.id, store.id) == 10
        assert stock_quantity(b.id, store.id) == 5

    def test_cancel_gives_back_only_what_was_deducted(self, client, cashier_headers, supervisor_headers,
                                                      store, make_product, set_stock):
        product = make_product("Clay Teapot", retail=25.0)
        set_stock(product, store, 2)
        created = _create(client, cashier_headers, store, [{"product_id": product.id, "quantity": 5}])
        assert created.json["items"][0]["stock_deducted"] == 2
        assert stock_quantity(product.id, store.id) == 0

        resp = client.put(f"/api/v1/orders/{created.json['id']}/cancel", headers=supervisor_headers)

        assert resp.status_code == 200
        assert resp.json["stock_effects"][0]["quantity"] == 2
        assert stock_quantity(product.id, store.id) == 2

    def test_cancel_after_skipped_decrement_adds_nothing(self, client, cashier_headers, supervisor_headers,
                                                         store, make_product):
        product = make_product("Made To Order", retail=40.0)
        created = _create(client, cashier_headers, store, [{"product_id": product.id, "quantity": 1}])

        resp = client.put(f"/api/v1/orders/{created.json['id']}/cancel", headers=supervisor_headers)

        assert resp.status_code == 200
        effect = resp.json["stock_effects"][0]
        assert effect["status"] == "skipped"
        assert effect["reason"] == "nothing deducted"
        assert stock_quantity(product.id, store.id) is None

    def test_order_stock_moves_audited(self, client, cashier_headers, supervisor_headers, store, make_product,
                                       set_stock):
        product = make_product("Soup Bowl", retail=7.0)
        stock_id = set_stock(product, store, 4).id
        created = _create(client, cashier_headers, store, [{"product_id": product.id, "quantity": 3}])
        client.put(f"/api/v1/orders/{created.json['id']}/cancel", headers=supervisor_headers)

        db.session.expire_all()
        entries = (
            db.session.query(AuditLog)
            .filter_by(action="stock_update", entity_type="stock", entity_id=stock_id)
            .order_by(AuditLog.id.asc())
            .all()
        )
        moves = [
            (e.changes_dict["reason"], e.changes_dict["old_quantity"], e.changes_dict["new_quantity"],
             e.changes_dict["order_id"])
            for e in entries
        ]
        assert moves == [
            ("order_created", 4, 1, created.json["id"]),
            ("order_cancelled", 1, 4, created.json["id"]),
        ]
        assert created.json["stock_effects"][0]["audit"] == "applied"


    def test_cannot_cancel_paid(self, client, cashier_headers, supervisor_headers, order):
        client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)

        resp = client.put(f"/api/v1/orders/{order['id']}/cancel", headers=supervisor_headers)

        assert resp.status_code == 409

    def test_cannot_pay_cancelled(self, client, cashier_headers, supervisor_headers, order):
        client.put(f"/api/v1/orders/{order['id']}/cancel", headers=supervisor_headers)

        resp = client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)

        assert resp.status_code == 409

    def test_cashier_cannot_cancel(self, client, cashier_headers, order):
        resp = client.put(f"/api/v1/orders/{order['id']}/cancel", headers=cashier_headers)
        assert resp.status_code == 403

    def test_status_changes_audited(self, client, cashier_headers, order):
        client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)
        client.put(f"/api/v1/orders/{order['id']}/complete", headers=cashier_headers)

        db.session.expire_all()
        entries = (
            db.session.query(AuditLog)
            .filter_by(entity_type="order", entity_id=order["id"], action="order_status")
            .order_by(AuditLog.id.asc())
            .all()
        )
        assert [(e.changes_dict["old_status"], e.changes_dict["new_status"]) for e in entries] == [
            ("pending", "paid"),
            ("paid", "completed"),
        ]

    def test_unknown_order(self, client, cashier_headers):
        resp = client.put("/api/v1/orders/999999/pay", headers=cashier_headers)
        assert resp.status_code == 404

    def test_lookup_by_number(self, client, cashier_headers, order):
        resp = client.get(f"/api/v1/orders/{order['order_number']}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == order["id"]

    def test_lookup_failure_is_logged_as_server_error(self, client, cashier_headers, monkeypatch):
        def _broken(identifier):
            raise RuntimeError("database went away")

        monkeypatch.setattr(order_service, "get_order", _broken)

        resp = client.get("/api/v1/orders/ORD-20260101-0001", headers=cashier_headers)

        assert resp.status_code == 500
        assert resp.json == {"error": "Internal server error"}


class TestPickup:

    @pytest.fixture
    def order(self, client, cashier_headers, store, stocked):
        a, _b = stocked
        return _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 2}]).json

    def _pickup(self, client, headers, order, **codes):
        return client.put(f"/api/v1/orders/pickup/{order['order_number']}", json=codes, headers=headers)

    def test_pickup_with_valid_codes(self, client, cashier_headers, order):
        resp = self._pickup(
            client, cashier_headers, order,
            invoice_check_code=order["invoice_check_code"],
            receipt_check_code=order["receipt_check_code"],
        )

        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "completed"
        assert resp.json["order"]["picked_up_at"] is not None
        assert resp.json["order"]["completed_at"] is not None
        assert resp.json["audit"]["status"] == "applied"

    def test_pickup_without_codes(self, client, cashier_headers, order):
        resp = self._pickup(client, cashier_headers, order)
        assert resp.status_code == 200

    def test_second_pickup_rejected(self, client, cashier_headers, order):
        first = self._pickup(client, cashier_headers, order)

        second = self._pickup(client, cashier_headers, order)

        assert second.status_code == 409
        assert second.json["picked_up_at"] == first.json["order"]["picked_up_at"]

    def test_wrong_invoice_code(self, client, cashier_headers, order):
        wrong = "0000" if order["invoice_check_code"] != "0000" else "0001"

        resp = self._pickup(
            client, cashier_headers, order,
            invoice_check_code=wrong,
            receipt_check_code=order["receipt_check_code"],
        )

        assert resp.status_code == 400
        db.session.expire_all()
        assert db.session.get(Order, order["id"]).picked_up_at is None

    def test_codes_read_from_query_string(self, client, cashier_headers, order):
        url = f"/api/v1/orders/pickup/{order['order_number']}"
        wrong = "0000" if order["invoice_check_code"] != "0000" else "0001"

        rejected = client.put(url, query_string={
            "invoice_check_code": wrong,
            "receipt_check_code": order["receipt_check_code"],
        }, headers=cashier_headers)
        accepted = client.put(url, query_string={
            "invoice_check_code": order["invoice_check_code"],
            "receipt_check_code": order["receipt_check_code"],
        }, headers=cashier_headers)

        assert rejected.status_code == 400
        assert accepted.status_code == 200

    def test_numeric_codes_are_ignored(self, client, cashier_headers, order):
        resp = self._pickup(
            client, cashier_headers, order,
            invoice_check_code=int(order["invoice_check_code"]),
            receipt_check_code=int(order["receipt_check_code"]),
        )
        assert resp.status_code == 200


    def test_cancelled_order_cannot_be_collected(self, client, cashier_headers, supervisor_headers, order):
        client.put(f"/api/v1/orders/{order['id']}/cancel", headers=supervisor_headers)

        resp = self._pickup(client, cashier_headers, order)

        assert resp.status_code == 409
        assert resp.json["status"] == "cancelled"

    def test_order_number_case_insensitive(self, client, cashier_headers, order):
        resp = client.put(f"/api/v1/orders/pickup/{order['order_number'].lower()}", json={}, headers=cashier_headers)
        assert resp.status_code == 200

    def test_unknown_order_number(self, client, cashier_headers, order):
        resp = client.put("/api/v1/orders/pickup/ORD-19700101-0000", json={}, headers=cashier_headers)
        assert resp.status_code == 404

    def test_pickup_audited(self, client, cashier_headers, order):
        self._pickup(client, cashier_headers, order)

        db.session.expire_all()
        entry = db.session.query(AuditLog).filter_by(action="order_pickup", entity_id=order["id"]).one()
        assert entry.changes_dict["order_number"] == order["order_number"]
        assert entry.changes_dict["status"] == "picked_up"


class TestListingAndStats:

    def test_list_filters_by_status(self, client, cashier_headers, store, stocked):
        a, _b = stocked
        first = _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 1}]).json
        _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 1}])
        client.put(f"/api/v1/orders/{first['id']}/pay", headers=cashier_headers)

        resp = client.get("/api/v1/orders?status=paid", headers=cashier_headers)

        assert resp.status_code == 200
        assert [o["id"] for o in resp.json["orders"]] == [first["id"]]
        assert "items" not in resp.json["orders"][0]

    def test_list_rejects_unknown_status(self, client, cashier_headers):
        resp = client.get("/api/v1/orders?status=lost", headers=cashier_headers)
        assert resp.status_code == 400

    def test_revenue_counts_paid_and_completed_only(self, client, cashier_headers, supervisor_headers, store, stocked):
        a, b = stocked
        paid = _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 2}]).json
        _create(client, cashier_headers, store, [{"product_id": b.id, "quantity": 1}])
        client.put(f"/api/v1/orders/{paid['id']}/pay", headers=cashier_headers)

        resp = client.get("/api/v1/orders/stats/revenue?days=7", headers=supervisor_headers)

        assert resp.status_code == 200
        assert resp.json["total_orders"] == 1
        assert resp.json["total_revenue"] == pytest.approx(20.0)

    def test_product_sales(self, client, cashier_headers, supervisor_headers, store, stocked):
        a, _b = stocked
        order = _create(client, cashier_headers, store, [{"product_id": a.id, "quantity": 4}]).json
        client.put(f"/api/v1/orders/{order['id']}/pay", headers=cashier_headers)

        resp = client.get("/api/v1/orders/stats/product-sales", headers=supervisor_headers)

        assert resp.status_code == 200
        row = resp.json["daily"][0]
        assert row["product_id"] == a.id
        assert row["quantity"] == 4
        assert row["revenue"] == pytest.approx(40.0)

    def test_cashier_cannot_see_stats(self, client, cashier_headers):
        resp = client.get("/api/v1/orders/stats/revenue", headers=cashier_headers)
        assert resp.status_code == 403
