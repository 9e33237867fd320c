"""Integration tests for the order endpoints via TestClient."""

import pytest
from app import app
from fastapi.testclient import TestClient
from protean import current_domain
from storefront.catalogue.product import Product


@pytest.fixture()
def client():
    return TestClient(app)


def _add_product(client, **overrides):
    body = {"name": "Soy Sauce", "price": 10.0, "stock": 5}
    body.update(overrides)
    response = client.post("/api/products", json=body)
    assert response.status_code == 201
    return response.json()["product_id"]


def _checkout(client, items, **overrides):
    body = {
        "customer_id": "cust-api-001",
        "items": items,
        "shipping_address": {"street": "1 Main St", "city": "Flushing", "state": "NY", "zip_code": "11354"},
        "delivery_mode": "next_day",
    }
    body.update(overrides)
    return client.post("/api/orders/checkout", json=body)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


class TestCheckoutEndpoint:
    def test_checkout(self, client):
        product_id = _add_product(client)

        response = _checkout(client, [{"product_id": product_id, "quantity": 2}])

        assert response.status_code == 201
        data = response.json()
        assert data["paid"] is False
        assert data["remaining"] == 27.67
        assert data["reused"] is False
        assert _stock(product_id) == 3

    def test_insufficient_stock_is_400(self, client):
        product_id = _add_product(client)

        response = _checkout(client, [{"product_id": product_id, "quantity": 6}])

        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientStockError"
        assert "stock" in response.json()["messages"]
        assert _stock(product_id) == 5

    def test_missing_product_is_404(self, client):
        response = _checkout(client, [{"product_id": "does-not-exist", "quantity": 1}])
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"
        assert "product_id" in response.json()["messages"]

    def test_missing_product_id_is_400(self, client):
        response = _checkout(client, [{"quantity": 1}])
        assert response.status_code == 400
        assert "product_id" in response.json()["messages"]

    def test_wallet_checkout(self, client):
        product_id = _add_product(client)

        response = _checkout(
            client,
            [{"product_id": product_id, "quantity": 2}],
            pay_method="wallet",
            wallet_amount=50.0,
        )

        assert response.status_code == 201
        assert response.json()["paid"] is True
        assert response.json()["remaining"] == 0.0

    def test_checkout_key_is_idempotent(self, client):
        product_id = _add_product(client)
        items = [{"product_id": product_id, "quantity": 1}]

        first = _checkout(client, items, checkout_key="cart-99").json()
        second = _checkout(client, items, checkout_key="cart-99").json()

        assert second["order_id"] == first["order_id"]
        assert second["reused"] is True
        assert _stock(product_id) == 4


class TestOrderEndpoints:
    def test_get_order(self, client):
        product_id = _add_product(client, deposit_per_unit=0.05)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 2}]).json()["order_id"]

        response = client.get(f"/api/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["stock_released"] is False
        assert data["items"][0]["name"] == "Soy Sauce"
        assert data["items"][0]["line_total"] == 20.0
        assert data["pricing"]["bottle_deposit"] == 0.1
        assert data["pricing"]["total"] == 27.77

    def test_get_unknown_order_is_404(self, client):
        response = client.get("/api/orders/nope")
        assert response.status_code == 404

    def test_payment_then_cancel_conflicts(self, client):
        product_id = _add_product(client)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 2}]).json()["order_id"]

        paid = client.post(f"/api/orders/{order_id}/payment", json={"payment_id": "pi_001"})
        assert paid.status_code == 200

        response = client.post(f"/api/orders/{order_id}/cancel", json={})
        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"
        assert response.json()["messages"]["status"] == ["Cannot transition from paid to cancelled"]
        assert _stock(product_id) == 3

    def test_cancel_and_release(self, client):
        product_id = _add_product(client)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 2}]).json()["order_id"]

        cancelled = client.post(f"/api/orders/{order_id}/cancel", json={"reason": "Ordered twice"})
        assert cancelled.status_code == 200
        assert cancelled.json()["units_released"] == 2

        released = client.post(f"/api/orders/{order_id}/release-stock")
        assert released.status_code == 200
        assert released.json()["units_released"] == 0
        assert _stock(product_id) == 5

    def test_release_pending_order_conflicts(self, client):
        product_id = _add_product(client)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 1}]).json()["order_id"]

        response = client.post(f"/api/orders/{order_id}/release-stock")

        assert response.status_code == 409
        assert "status" in response.json()["messages"]

    def test_payment_failure(self, client):
        product_id = _add_product(client)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 2}]).json()["order_id"]

        response = client.post(f"/api/orders/{order_id}/payment-failure", json={"reason": "Card declined"})

        assert response.status_code == 200
        assert response.json()["units_released"] == 2
        assert client.get(f"/api/orders/{order_id}").json()["status"] == "cancelled"


class TestAdminEndpoints:
    def test_picklist_and_dispatch(self, client):
        product_id = _add_product(client)
        order_id = _checkout(client, [{"product_id": product_id, "quantity": 2}]).json()["order_id"]
        client.post(f"/api/orders/{order_id}/payment", json={"payment_id": "pi_001"})

        picklist = client.get("/api/admin/picklist").json()
        assert picklist == [
            {
                "product_id": product_id,
                "variant_key": "single",
                "name": "Soy Sauce",
                "quantity": 2,
                "units": 2,
                "orders": 1,
            }
        ]

        [batch] = client.get("/api/admin/dispatch").json()
        assert batch["zone_id"] == "unassigned"
        assert batch["orders"][0]["order_id"] == order_id


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
