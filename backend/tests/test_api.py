# Overview: Pytest coverage for the JSON API: auth, roles, ledger endpoints and error status mapping.

import pytest

from shopdesk.services import auth_service

PASSWORD = "Passw0rd!"


def _login(client, email, device_name="Test Device"):
    resp = client.post("/api/auth/login", json={
        "email": email,
        "password": PASSWORD,
        "device": {"name": device_name, "browser": "pytest", "os": "test"},
    })
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client, db_session):
    auth_service.register_user("boss@example.com", PASSWORD, "Shop", "Owner", role="admin")
    return _login(client, "boss@example.com")


@pytest.fixture
def user_token(client, db_session):
    auth_service.register_user("clerk@example.com", PASSWORD, "Counter", "Clerk")
    return _login(client, "clerk@example.com")


def _create_product(client, token, name="Widget", price="100.00", stock=5):
    resp = client.post("/api/products", json={"name": name, "price": price, "stock": stock}, headers=_auth(token))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _create_customer(client, token, email="buyer@example.com", wallet_balance=None):
    payload = {"first_name": "Buyer", "last_name": "One", "email": email}
    if wallet_balance is not None:
        payload["wallet_balance"] = wallet_balance
    resp = client.post("/api/customers", json=payload, headers=_auth(token))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _create_invoice(client, token, customer_id, product_id, quantity=1):
    return client.post("/api/invoices", json={
        "customer_id": customer_id,
        "lines": [{"product_id": product_id, "quantity": quantity}],
    }, headers=_auth(token))


class TestSystem:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"]["status"] == "healthy"


class TestAuthRoutes:
    def test_requires_token(self, client, db_session):
        assert client.get("/api/products").status_code == 401
        assert client.get("/api/products", headers=_auth("bogus")).status_code == 401

    def test_me_and_logout(self, client, user_token):
        me = client.get("/api/auth/me", headers=_auth(user_token))
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "clerk@example.com"

        assert client.post("/api/auth/logout", headers=_auth(user_token)).status_code == 200
        assert client.get("/api/auth/me", headers=_auth(user_token)).status_code == 401

    def test_bad_credentials(self, client, user_token):
        resp = client.post("/api/auth/login", json={"email": "clerk@example.com", "password": "Nope0000!"})
        assert resp.status_code == 401

    def test_device_limit_response(self, client, user_token):
        _login(client, "clerk@example.com", "Second")
        resp = client.post("/api/auth/login", json={
            "email": "clerk@example.com", "password": PASSWORD, "device": {"name": "Third"},
        })
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "MAX_DEVICES_REACHED"
        assert len(body["devices"]) == 2

    def test_user_admin_requires_admin_role(self, client, user_token, admin_token):
        assert client.get("/api/users", headers=_auth(user_token)).status_code == 403
        resp = client.get("/api/users?role=user", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert [u["email"] for u in resp.get_json()["users"]] == ["clerk@example.com"]

    def test_admin_deactivates_user(self, client, user_token, admin_token):
        users = client.get("/api/users", headers=_auth(admin_token)).get_json()["users"]
        resp = client.patch(f"/api/users/{users[0]['id']}/status", json={"status": "inactive"},
                            headers=_auth(admin_token))
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=_auth(user_token)).status_code == 401


class TestLedgerRoutes:
    def test_invoice_lifecycle(self, client, user_token):
        product = _create_product(client, user_token, stock=5)
        customer = _create_customer(client, user_token)

        resp = _create_invoice(client, user_token, customer["id"], product["id"], quantity=2)
        assert resp.status_code == 201
        invoice = resp.get_json()
        assert invoice["amount"] == "200.00"
        assert invoice["invoice_number"] == "INV-0001"
        assert len(invoice["items"]) == 1

        product_now = client.get(f"/api/products/{product['id']}", headers=_auth(user_token)).get_json()
        assert product_now["stock"] == 3
        assert product_now["status"] == "Low Stock"

        pay = client.post(f"/api/invoices/{invoice['id']}/payments",
                          json={"amount": "150.00", "method": "cash"}, headers=_auth(user_token))
        assert pay.status_code == 201
        assert pay.get_json()["invoice"]["status"] == "unpaid"

        pay = client.post(f"/api/invoices/{invoice['id']}/payments",
                          json={"amount": "50.00", "method": "upi", "date": "2024-07-01"},
                          headers=_auth(user_token))
        assert pay.get_json()["invoice"]["status"] == "paid"
        assert pay.get_json()["invoice"]["paid_date"] == "2024-07-01"

        summary = client.get(f"/api/invoices/{invoice['id']}/payments/summary", headers=_auth(user_token))
        assert summary.get_json()["remaining"] == "0.00"

        # Paid invoices with payments cannot be deleted
        assert client.delete(f"/api/invoices/{invoice['id']}", headers=_auth(user_token)).status_code == 409

    def test_insufficient_stock_is_400(self, client, user_token):
        product = _create_product(client, user_token, stock=5)
        customer = _create_customer(client, user_token)
        resp = _create_invoice(client, user_token, customer["id"], product["id"], quantity=6)
        assert resp.status_code == 400
        assert "Insufficient stock" in resp.get_json()["error"]

    def test_malformed_bodies_are_400(self, client, user_token):
        product = _create_product(client, user_token, stock=5)
        customer = _create_customer(client, user_token)
        invoice = _create_invoice(client, user_token, customer["id"], product["id"]).get_json()

        resp = client.post("/api/invoices", json={"customer_id": customer["id"], "lines": 5},
                           headers=_auth(user_token))
        assert resp.status_code == 400
        resp = client.post("/api/invoices/merge", json={"customer_id": customer["id"], "invoice_ids": 7},
                           headers=_auth(user_token))
        assert resp.status_code == 400
        resp = client.post(f"/api/invoices/{invoice['id']}/payments",
                           json={"amount": "1e30", "method": "cash"}, headers=_auth(user_token))
        assert resp.status_code == 400
        resp = client.post("/api/products", json={"name": "Huge", "price": "1e30", "stock": 1},
                           headers=_auth(user_token))
        assert resp.status_code == 400

    def test_unknown_invoice_is_404(self, client, user_token):
        assert client.get("/api/invoices/missing", headers=_auth(user_token)).status_code == 404

    def test_wallet_shortfall_is_422(self, client, user_token):
        product = _create_product(client, user_token, price="80.00", stock=5)
        customer = _create_customer(client, user_token, wallet_balance="20.00")
        invoice = _create_invoice(client, user_token, customer["id"], product["id"]).get_json()

        resp = client.post(f"/api/invoices/{invoice['id']}/payments",
                           json={"amount": "30.00", "method": "wallet"}, headers=_auth(user_token))
        assert resp.status_code == 422
        assert resp.get_json()["available"] == "20.00"

    def test_merge(self, client, user_token):
        p100 = _create_product(client, user_token, "Hundred", "100.00", 10)
        p50 = _create_product(client, user_token, "Fifty", "50.00", 10)
        customer = _create_customer(client, user_token)
        inv1 = _create_invoice(client, user_token, customer["id"], p100["id"]).get_json()
        inv2 = _create_invoice(client, user_token, customer["id"], p50["id"]).get_json()

        resp = client.post("/api/invoices/merge", json={
            "customer_id": customer["id"], "invoice_ids": [inv1["id"], inv2["id"]],
        }, headers=_auth(user_token))
        assert resp.status_code == 201
        merged = resp.get_json()
        assert merged["amount"] == "150.00"
        assert len(merged["items"]) == 2

        customer_now = client.get(f"/api/customers/{customer['id']}", headers=_auth(user_token)).get_json()
        assert customer_now["orders"] == 1
        assert customer_now["total_spent"] == "150.00"

        single = client.post("/api/invoices/merge", json={
            "customer_id": customer["id"], "invoice_ids": [merged["id"]],
        }, headers=_auth(user_token))
        assert single.status_code == 400

    def test_customer_edit_refuses_aggregates(self, client, user_token):
        customer = _create_customer(client, user_token)
        resp = client.patch(f"/api/customers/{customer['id']}", json={"orders": 99}, headers=_auth(user_token))
        assert resp.status_code == 400

    def test_delete_product_needs_admin_and_no_references(self, client, user_token, admin_token):
        product = _create_product(client, admin_token)
        customer = _create_customer(client, admin_token)
        _create_invoice(client, admin_token, customer["id"], product["id"])

        assert client.delete(f"/api/products/{product['id']}", headers=_auth(user_token)).status_code == 403
        assert client.delete(f"/api/products/{product['id']}", headers=_auth(admin_token)).status_code == 409

    def test_recent_and_unpaid_lists(self, client, user_token):
        product = _create_product(client, user_token, stock=10)
        customer = _create_customer(client, user_token)
        for _ in range(3):
            _create_invoice(client, user_token, customer["id"], product["id"])

        recent = client.get("/api/invoices/recent?limit=2", headers=_auth(user_token)).get_json()["items"]
        assert [i["invoice_number"] for i in recent] == ["INV-0003", "INV-0002"]
        unpaid = client.get("/api/invoices/unpaid", headers=_auth(user_token)).get_json()["items"]
        assert len(unpaid) == 3
