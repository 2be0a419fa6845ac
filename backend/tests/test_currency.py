"""
Currency rates and the provider sync.

The provider is replaced with httpx.MockTransport; nothing leaves the box.
"""

import httpx
import pytest

from posbackend.errors import StorageError
from posbackend.models import CurrencyRate
from posbackend.services import currency_service


PROVIDER_DOCUMENT = {
    "base": "GBP",
    "date": "2026-10-18",
    "rates": {"GBP": 1, "HKD": 9.92, "USD": 1.27, "EUR": 1.18, "XXX": 0, "BAD": "n/a"},
}


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _serve(document, status_code=200):
    def handler(request):
        return httpx.Response(status_code, json=document)
    return handler


def _rate(db_session, code):
    db_session.expire_all()
    return db_session.query(CurrencyRate).filter_by(currency_code=code).one()


class TestSync:

    def test_sync_creates_rates(self, db_session):
        result = currency_service.sync_rates(client=_client(_serve(PROVIDER_DOCUMENT)))

        # GBP + HKD + USD + EUR; zero and malformed rates are skipped
        assert result["updated_count"] == 4
        codes = {r.currency_code for r in db_session.query(CurrencyRate).all()}
        assert codes == {"GBP", "HKD", "USD", "EUR"}
        gbp = _rate(db_session, "GBP")
        assert gbp.rate_to_gbp == 1.0
        assert gbp.is_pinned is True
        assert _rate(db_session, "HKD").updated_by == "api_sync"

    def test_manual_pin_survives_sync(self, db_session):
        currency_service.create_rate("HKD", 10.0, is_pinned=True)
        currency_service.create_rate("USD", 1.30, is_pinned=False)

        currency_service.sync_rates(client=_client(_serve(PROVIDER_DOCUMENT)))

        hkd = _rate(db_session, "HKD")
        usd = _rate(db_session, "USD")
        assert hkd.rate_to_gbp == 9.92
        assert hkd.is_pinned is True
        assert usd.rate_to_gbp == 1.27
        assert usd.is_pinned is False

    def test_synced_pin_is_dropped(self, db_session):
        db_session.add(CurrencyRate(currency_code="EUR", rate_to_gbp=1.1, is_pinned=True, updated_by="api_sync"))
        db_session.commit()

        currency_service.sync_rates(client=_client(_serve(PROVIDER_DOCUMENT)))

        assert _rate(db_session, "EUR").is_pinned is False

    def test_provider_error_raises_storage_error(self, db_session):
        with pytest.raises(StorageError) as exc_info:
            currency_service.sync_rates(client=_client(_serve({"error": "down"}, status_code=503)))
        assert exc_info.value.details["provider_status"] == 503
        assert db_session.query(CurrencyRate).count() == 0

    def test_document_without_rates(self, db_session):
        with pytest.raises(StorageError):
            currency_service.sync_rates(client=_client(_serve({"base": "GBP"})))

    def test_network_failure(self, db_session):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(StorageError):
            currency_service.sync_rates(client=_client(handler))

    def test_sync_route_maps_provider_failure_to_502(self, client, manager_headers, monkeypatch):
        real_client = httpx.Client
        monkeypatch.setattr(
            httpx, "Client",
            lambda **kwargs: real_client(transport=httpx.MockTransport(_serve({}, status_code=500))),
        )

        resp = client.post("/api/v1/currency-rates/sync", headers=manager_headers)

        assert resp.status_code == 502
        assert resp.json["provider_status"] == 500

    def test_sync_route(self, client, manager_headers, monkeypatch):
        real_client = httpx.Client
        monkeypatch.setattr(
            httpx, "Client",
            lambda **kwargs: real_client(transport=httpx.MockTransport(_serve(PROVIDER_DOCUMENT))),
        )

        resp = client.post("/api/v1/currency-rates/sync", headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["updated_count"] == 4
        assert resp.json["sync_date"].endswith("Z")


class TestManualRates:

    def test_create_and_list_pinned_first(self, client, manager_headers):
        client.post("/api/v1/currency-rates", json={"currency_code": "USD", "rate_to_gbp": 1.27},
                    headers=manager_headers)
        client.post("/api/v1/currency-rates", json={"currency_code": "HKD", "rate_to_gbp": 9.9, "is_pinned": True},
                    headers=manager_headers)

        resp = client.get("/api/v1/currency-rates", headers=manager_headers)

        assert resp.status_code == 200
        assert [r["currency_code"] for r in resp.json["rates"]] == ["HKD", "USD"]

    def test_duplicate_rejected(self, client, manager_headers):
        body = {"currency_code": "USD", "rate_to_gbp": 1.27}
        client.post("/api/v1/currency-rates", json=body, headers=manager_headers)

        resp = client.post("/api/v1/currency-rates", json=body, headers=manager_headers)

        assert resp.status_code == 409

    def test_non_positive_rate_rejected(self, client, manager_headers):
        resp = client.post("/api/v1/currency-rates", json={"currency_code": "USD", "rate_to_gbp": 0},
                           headers=manager_headers)
        assert resp.status_code == 400

    def test_pin_marks_rate_manual(self, db_session, client, manager_headers):
        db_session.add(CurrencyRate(currency_code="EUR", rate_to_gbp=1.1, is_pinned=False, updated_by="api_sync"))
        db_session.commit()

        resp = client.put("/api/v1/currency-rates/EUR/pin", json={"is_pinned": True}, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["is_pinned"] is True
        assert _rate(db_session, "EUR").updated_by == "manual"

    def test_pin_requires_flag(self, client, manager_headers):
        resp = client.put("/api/v1/currency-rates/EUR/pin", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_code(self, client, manager_headers):
        resp = client.get("/api/v1/currency-rates/ZZZ", headers=manager_headers)
        assert resp.status_code == 404

    def test_supervisor_can_read_but_not_write(self, client, supervisor_headers):
        assert client.get("/api/v1/currency-rates", headers=supervisor_headers).status_code == 200
        resp = client.post("/api/v1/currency-rates", json={"currency_code": "USD", "rate_to_gbp": 1.27},
                           headers=supervisor_headers)
        assert resp.status_code == 403
