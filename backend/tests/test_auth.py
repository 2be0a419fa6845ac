"""
Authentication, till devices and staff accounts.
"""

from posbackend.services import device_service, stock_service

from conftest import PASSWORD, PIN, auth_headers, get_auth_token


class TestPasswordLogin:

    def test_login_returns_token_and_permissions(self, client, manager):
        resp = client.post("/api/v1/auth/login", json={"username": "manager", "password": PASSWORD})

        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["user"]["username"] == "manager"
        assert "MANAGE_COSTS" in resp.json["permissions"]

    def test_login_by_email(self, client, supervisor):
        token = get_auth_token(client, "supervisor@pos.local", PASSWORD)
        assert token is not None

    def test_wrong_password(self, client, manager):
        resp = client.post("/api/v1/auth/login", json={"username": "manager", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        resp = client.post("/api/v1/auth/login", json={"username": "manager"})
        assert resp.status_code == 400

    def test_me(self, client, supervisor):
        token = get_auth_token(client, "supervisor", PASSWORD)

        resp = client.get("/api/v1/auth/me", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "supervisor"
        assert "ADJUST_STOCK" in resp.json["permissions"]
        assert "MANAGE_COSTS" not in resp.json["permissions"]

    def test_logout_revokes_token(self, client, manager):
        token = get_auth_token(client, "manager", PASSWORD)

        logout = client.post("/api/v1/auth/logout", headers=auth_headers(token))
        me = client.get("/api/v1/auth/me", headers=auth_headers(token))

        assert logout.status_code == 200
        assert me.status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/api/v1/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_deactivated_user_loses_session(self, client, manager_headers, cashier):
        token = get_auth_token(client, "cashier", PASSWORD)

        client.put(f"/api/v1/users/{cashier.id}", json={"is_active": False}, headers=manager_headers)

        assert client.get("/api/v1/auth/me", headers=auth_headers(token)).status_code == 401
        assert get_auth_token(client, "cashier", PASSWORD) is None


class TestPinLogin:

    def test_pin_login(self, client, cashier):
        resp = client.post("/api/v1/auth/pin-login", json={"username": "cashier", "pin": PIN})

        assert resp.status_code == 200
        assert resp.json["device"] is None
        assert resp.json["session"]["device_code"] is None

    def test_wrong_pin(self, client, cashier):
        resp = client.post("/api/v1/auth/pin-login", json={"username": "cashier", "pin": "9999"})
        assert resp.status_code == 401

    def test_user_without_pin(self, client, manager):
        resp = client.post("/api/v1/auth/pin-login", json={"username": "manager", "pin": "1234"})
        assert resp.status_code == 401

    def test_pin_login_on_device(self, client, db_session, store, cashier, make_product, set_stock):
        device_service.register_device("till-07", store.id, "Back till")
        product = make_product("Rice", retail=2.0)
        set_stock(product, store, 5)
        stock_service.record_snapshot("day_start", store_id=store.id)

        resp = client.post("/api/v1/auth/pin-login", json={
            "username": "cashier", "pin": PIN, "device_code": "till-07",
        })

        assert resp.status_code == 200
        assert resp.json["device"]["device_code"] == "{till-07}"
        assert resp.json["session"]["device_code"] == "{till-07}"
        assert resp.json["last_stocktake_at"] is not None

    def test_unknown_device(self, client, cashier):
        resp = client.post("/api/v1/auth/pin-login", json={
            "username": "cashier", "pin": PIN, "device_code": "nowhere",
        })
        assert resp.status_code == 401


class TestDevices:

    def test_register_and_duplicate(self, client, store):
        body = {"device_code": "{front}", "store_id": store.id, "device_name": "Front till"}

        first = client.post("/api/v1/device/register", json=body)
        second = client.post("/api/v1/device/register", json={**body, "device_code": "front"})

        assert first.status_code == 201
        assert first.json["device_code"] == "{front}"
        assert second.status_code == 409

    def test_register_unknown_store(self, client):
        resp = client.post("/api/v1/device/register", json={"device_code": "x1", "store_id": 9999})
        assert resp.status_code == 404

    def test_device_users_are_store_pin_users(self, client, db_session, store, other_store, cashier, manager):
        from posbackend.services import user_service
        user_service.create_user(username="harbour_till", password=PASSWORD, role="pos_user",
                                 pin="4321", store_ids=[other_store.id])
        device_service.register_device("front", store.id)

        resp = client.get("/api/v1/device/front/users")

        assert resp.status_code == 200
        assert [u["username"] for u in resp.json["users"]] == ["cashier"]

    def test_device_products_carry_till_price(self, client, db_session, store, make_product):
        device_service.register_device("front", store.id)
        make_product("Priced", retail=4.5)
        make_product("Unpriced")

        resp = client.get("/api/v1/device/front/products")

        prices = {p["name"]: p["pos_price"] for p in resp.json["products"]}
        assert prices == {"Priced": 4.5, "Unpriced": 0.0}

    def test_unknown_device_lookup(self, client):
        assert client.get("/api/v1/device/ghost/users").status_code == 404

    def test_configure_moves_device(self, client, db_session, manager_headers, store, other_store):
        device_service.register_device("front", store.id)

        resp = client.put("/api/v1/device/configure", json={
            "device_code": "front", "store_id": other_store.id,
        }, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["created"] is False
        assert resp.json["device"]["store_id"] == other_store.id


class TestUsers:

    def test_create_user(self, client, manager_headers, store):
        resp = client.post("/api/v1/users", json={
            "username": "till2",
            "password": "Till-pass1!",
            "role": "pos_user",
            "pin": "5678",
            "store_ids": [store.id],
        }, headers=manager_headers)

        assert resp.status_code == 201
        assert resp.json["has_pin"] is True
        assert resp.json["store_ids"] == [store.id]

    def test_weak_password(self, client, manager_headers):
        resp = client.post("/api/v1/users", json={
            "username": "weak", "password": "password", "role": "pos_user",
        }, headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_role(self, client, manager_headers):
        resp = client.post("/api/v1/users", json={
            "username": "boss", "password": PASSWORD, "role": "owner",
        }, headers=manager_headers)
        assert resp.status_code == 400

    def test_duplicate_username(self, client, manager_headers, cashier):
        resp = client.post("/api/v1/users", json={
            "username": "cashier", "password": PASSWORD, "role": "pos_user",
        }, headers=manager_headers)
        assert resp.status_code == 409

    def test_bad_pin(self, client, manager_headers, cashier):
        resp = client.put(f"/api/v1/users/{cashier.id}/pin", json={"pin": "12"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_assign_stores(self, client, manager_headers, cashier, store, other_store):
        resp = client.put(f"/api/v1/users/{cashier.id}/stores",
                          json={"store_ids": [other_store.id]}, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["store_ids"] == [other_store.id]


def test_health(client, db_session, store):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
