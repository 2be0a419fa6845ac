"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Till users (pos_user) are denied back-office operations (403)
- Supervisors are denied management-only operations (403)
- Management can perform privileged operations
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/auth/me"),
            ("GET", "/api/v1/products"),
            ("POST", "/api/v1/products"),
            ("POST", "/api/v1/products/1/cost"),
            ("POST", "/api/v1/products/1/discounts/1"),
            ("POST", "/api/v1/pricing/quote"),
            ("GET", "/api/v1/sectors"),
            ("GET", "/api/v1/categories"),
            ("GET", "/api/v1/stock"),
            ("PUT", "/api/v1/stock/1/1"),
            ("GET", "/api/v1/stock/report"),
            ("GET", "/api/v1/restock-orders"),
            ("POST", "/api/v1/orders"),
            ("GET", "/api/v1/orders"),
            ("PUT", "/api/v1/orders/1/pay"),
            ("PUT", "/api/v1/orders/pickup/ORD-20260101-0001"),
            ("GET", "/api/v1/users"),
            ("GET", "/api/v1/stores"),
            ("GET", "/api/v1/devices"),
            ("GET", "/api/v1/catalogs/1"),
            ("GET", "/api/v1/currency-rates"),
            ("POST", "/api/v1/currency-rates/sync"),
            ("GET", "/api/v1/audit/stock"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# TILL USERS DENIED BACK-OFFICE OPERATIONS: 403
# =============================================================================


class TestCashierDenied:
    """pos_user can sell and count stock, nothing else."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/v1/products"),
            ("GET", "/api/v1/products/1/costs"),
            ("POST", "/api/v1/products/1/cost"),
            ("POST", "/api/v1/products/1/discounts/1"),
            ("POST", "/api/v1/pricing/quote"),
            ("POST", "/api/v1/sectors"),
            ("GET", "/api/v1/stock/report"),
            ("POST", "/api/v1/restock-orders"),
            ("PUT", "/api/v1/orders/1/cancel"),
            ("GET", "/api/v1/orders/stats/revenue"),
            ("GET", "/api/v1/users"),
            ("POST", "/api/v1/users"),
            ("GET", "/api/v1/devices"),
            ("GET", "/api/v1/catalogs/1"),
            ("GET", "/api/v1/currency-rates"),
            ("GET", "/api/v1/audit/order"),
        ],
    )
    def test_forbidden(self, client, cashier_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=cashier_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["error"] == "Permission denied"

    def test_can_list_products(self, client, cashier_headers):
        assert client.get("/api/v1/products", headers=cashier_headers).status_code == 200


class TestSupervisorDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/v1/products/1/cost"),
            ("PUT", "/api/v1/products/1/cost"),
            ("POST", "/api/v1/products/1/discounts/1"),
            ("DELETE", "/api/v1/sectors/1"),
            ("POST", "/api/v1/users"),
            ("POST", "/api/v1/stores"),
            ("PUT", "/api/v1/device/configure"),
            ("POST", "/api/v1/currency-rates/sync"),
        ],
    )
    def test_forbidden(self, client, supervisor_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=supervisor_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestManagementAllowed:

    def test_create_sector(self, client, manager_headers):
        resp = client.post("/api/v1/sectors", json={"name": "Restaurants", "discount_rate": 12.5},
                           headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["discount_rate"] == 12.5

    def test_create_store(self, client, manager_headers):
        resp = client.post("/api/v1/stores", json={"name": "Airport"}, headers=manager_headers)
        assert resp.status_code == 201

    def test_list_users(self, client, manager_headers):
        resp = client.get("/api/v1/users", headers=manager_headers)
        assert resp.status_code == 200
        assert [u["username"] for u in resp.json["users"]] == ["manager"]
