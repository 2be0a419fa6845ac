"""
Stock ledger tests: manual adjustments, audit trail, stocktake snapshots.
"""

import pytest

from posbackend.extensions import db
from posbackend.models import AuditLog, StockSnapshot
from posbackend.services import audit_service
from posbackend.services.stock_service import adjust_stock, record_snapshot, stock_report
from posbackend.time_utils import utcnow
from posbackend.validation import ValidationError

from conftest import stock_quantity


def _adjust(client, headers, product, store, **body):
    return client.put(f"/api/v1/stock/{product.id}/{store.id}", json=body, headers=headers)


class TestAdjustStock:

    def test_creates_row_and_audits(self, client, supervisor_headers, store, make_product):
        product = make_product("Soy Sauce", retail=3.5)

        resp = _adjust(client, supervisor_headers, product, store, quantity=24, reason="delivery")

        assert resp.status_code == 200
        assert resp.json["stock"]["quantity"] == 24
        assert resp.json["audit"]["status"] == "applied"
        assert stock_quantity(product.id, store.id) == 24

        db.session.expire_all()
        entry = db.session.query(AuditLog).filter_by(entity_type="stock").one()
        assert entry.action == "stock_update"
        assert entry.changes_dict["old_quantity"] == 0
        assert entry.changes_dict["new_quantity"] == 24
        assert entry.changes_dict["reason"] == "delivery"

    def test_overwrites_existing(self, client, supervisor_headers, store, make_product, set_stock):
        product = make_product("Vinegar", retail=2.0)
        set_stock(product, store, 10)

        resp = _adjust(client, supervisor_headers, product, store, quantity=4, low_stock_threshold=5)

        assert resp.status_code == 200
        assert resp.json["stock"]["quantity"] == 4
        assert resp.json["stock"]["is_low"] is True

    def test_negative_quantity_rejected(self, client, supervisor_headers, store, make_product):
        product = make_product("Chilli Oil", retail=4.0)

        resp = _adjust(client, supervisor_headers, product, store, quantity=-1)

        assert resp.status_code == 400
        assert stock_quantity(product.id, store.id) is None

    def test_quantity_required(self, client, supervisor_headers, store, make_product):
        product = make_product("Sesame Oil", retail=4.0)
        resp = _adjust(client, supervisor_headers, product, store, reason="count")
        assert resp.status_code == 400

    def test_unknown_product(self, client, supervisor_headers, store):
        resp = client.put(f"/api/v1/stock/99999/{store.id}", json={"quantity": 1}, headers=supervisor_headers)
        assert resp.status_code == 404

    def test_audit_query(self, client, supervisor_headers, store, make_product):
        product = make_product("Oyster Sauce", retail=3.0)
        _adjust(client, supervisor_headers, product, store, quantity=5)
        _adjust(client, supervisor_headers, product, store, quantity=8)

        resp = client.get(
            f"/api/v1/audit/stock?product_id={product.id}&store_id={store.id}",
            headers=supervisor_headers,
        )

        assert resp.status_code == 200
        assert [log["changes"]["new_quantity"] for log in resp.json["logs"]] == [8, 5]


class TestStocktakeOnlyUsers:

    def test_cashier_can_record_stocktake(self, client, cashier_headers, store, make_product):
        product = make_product("Rice 5kg", retail=12.0)

        resp = _adjust(client, cashier_headers, product, store, quantity=9, reason="stocktake_day_start")

        assert resp.status_code == 200
        db.session.expire_all()
        snapshot = db.session.query(StockSnapshot).filter_by(product_id=product.id).one()
        assert snapshot.kind == "day_start"
        assert snapshot.quantity == 9

    def test_cashier_cannot_adjust_freely(self, client, cashier_headers, store, make_product):
        product = make_product("Rice 10kg", retail=20.0)

        resp = _adjust(client, cashier_headers, product, store, quantity=50, reason="found more")

        assert resp.status_code == 403
        assert resp.json["required_permission"] == "ADJUST_STOCK"
        assert stock_quantity(product.id, store.id) is None

        db.session.expire_all()
        denied = db.session.query(AuditLog).filter_by(action="permission_denied").count()
        assert denied == 1


class TestSnapshotsAndReport:

    def test_report_pairs_day_start_and_end(self, db_session, store, make_product, set_stock):
        noodles = make_product("Noodles", retail=1.2)
        dumplings = make_product("Dumplings", retail=4.5)
        set_stock(noodles, store, 30)
        set_stock(dumplings, store, 12)
        today = utcnow().date()

        record_snapshot("day_start", store_id=store.id)
        adjust_stock(noodles.id, store.id, 18)
        record_snapshot("day_end", store_id=store.id)

        rows = {row["product_name"]: row for row in stock_report(today, store.id)}
        assert rows["Noodles"]["day_start_quantity"] == 30
        assert rows["Noodles"]["day_end_quantity"] == 18
        assert rows["Dumplings"]["day_start_quantity"] == 12
        assert rows["Dumplings"]["day_end_quantity"] == 12
        assert list(rows) == ["Dumplings", "Noodles"]

    def test_snapshot_is_upserted(self, db_session, store, make_product, set_stock):
        tofu = make_product("Tofu", retail=1.0)
        set_stock(tofu, store, 6)

        record_snapshot("day_start", store_id=store.id)
        adjust_stock(tofu.id, store.id, 7)
        record_snapshot("day_start", store_id=store.id)

        snapshots = db_session.query(StockSnapshot).filter_by(product_id=tofu.id).all()
        assert len(snapshots) == 1
        assert snapshots[0].quantity == 7

    def test_missing_side_is_none(self, db_session, store, make_product):
        product = make_product("Kimchi", retail=5.0)
        adjust_stock(product.id, store.id, 3, reason="stocktake_day_end")

        rows = stock_report(utcnow().date(), store.id)

        assert rows[0]["day_start_quantity"] is None
        assert rows[0]["day_end_quantity"] == 3

    def test_unknown_kind(self, db_session, store):
        with pytest.raises(ValidationError):
            record_snapshot("lunchtime", store_id=store.id)

    def test_report_route(self, client, supervisor_headers, store, make_product, set_stock):
        product = make_product("Miso", retail=3.0)
        set_stock(product, store, 4)
        snap = client.post("/api/v1/stock/snapshots", json={"kind": "day_start", "store_id": store.id},
                           headers=supervisor_headers)
        assert snap.status_code == 201
        assert snap.json["recorded"] == 1

        resp = client.get(
            f"/api/v1/stock/report?date={utcnow().date().isoformat()}&store_id={store.id}",
            headers=supervisor_headers,
        )

        assert resp.status_code == 200
        assert resp.json["items"][0]["day_start_quantity"] == 4

    def test_report_bad_date(self, client, supervisor_headers):
        resp = client.get("/api/v1/stock/report?date=yesterday", headers=supervisor_headers)
        assert resp.status_code == 400

    def test_cashier_cannot_read_report(self, client, cashier_headers):
        resp = client.get("/api/v1/stock/report", headers=cashier_headers)
        assert resp.status_code == 403


class TestStockQueries:

    def test_low_stock(self, client, cashier_headers, store, make_product, set_stock):
        low = make_product("Ginger", retail=0.8)
        fine = make_product("Garlic", retail=0.5)
        set_stock(low, store, 2, threshold=5)
        set_stock(fine, store, 20, threshold=5)

        resp = client.get(f"/api/v1/stock/low-stock?store_id={store.id}", headers=cashier_headers)

        assert resp.status_code == 200
        assert [row["product_id"] for row in resp.json["stock"]] == [low.id]

    def test_store_stock(self, client, cashier_headers, store, other_store, make_product, set_stock):
        product = make_product("Bok Choy", retail=1.5)
        set_stock(product, store, 3)
        set_stock(product, other_store, 9)

        resp = client.get(f"/api/v1/stock/{other_store.id}", headers=cashier_headers)

        assert resp.status_code == 200
        assert [row["quantity"] for row in resp.json["stock"]] == [9]


def test_audit_service_documents_its_invariants():
    assert audit_service.__doc__.lstrip().startswith("Audit log invariants")
