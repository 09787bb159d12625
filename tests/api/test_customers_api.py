"""Tests for customer endpoints."""

from fastapi.testclient import TestClient


class TestCustomers:
    """Tests for /customers."""

    def test_register_and_get(self, auth_client: TestClient) -> None:
        """Should register a customer and read it back."""
        created = auth_client.post(
            "/customers",
            json={"first_name": "Grace", "last_name": "Hopper", "email": "Grace@Navy.mil", "phone": "555"},
        )
        assert created.status_code == 201
        customer = created.json()
        assert customer["email"] == "grace@navy.mil"
        assert customer["full_name"] == "Grace Hopper"

        fetched = auth_client.get(f"/customers/{customer['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["phone"] == "555"

    def test_duplicate_email(self, auth_client: TestClient) -> None:
        body = {"first_name": "A", "last_name": "B", "email": "same@example.com"}
        auth_client.post("/customers", json=body)

        response = auth_client.post("/customers", json=body)

        assert response.status_code == 422
        assert response.json()["error_code"] == "DUPLICATE_EMAIL"

    def test_unknown_customer(self, auth_client: TestClient) -> None:
        response = auth_client.get("/customers/00000000-0000-0000-0000-000000000001")

        assert response.status_code == 404
        assert response.json()["error_code"] == "CUSTOMER_NOT_FOUND"

    def test_customer_orders(self, auth_client: TestClient) -> None:
        customer = auth_client.post(
            "/customers", json={"first_name": "A", "last_name": "B", "email": "a@example.com"}
        ).json()
        product = auth_client.post(
            "/products", json={"name": "Widget", "sku": "W-1", "price": "5.00", "stock_quantity": 10}
        ).json()
        for _ in range(2):
            auth_client.post(
                "/orders",
                json={"customer_id": customer["id"], "items": [{"product_id": product["id"], "quantity": 1}]},
            )

        response = auth_client.get(f"/customers/{customer['id']}/orders")

        assert response.status_code == 200
        orders = response.json()
        assert len(orders) == 2
        assert orders[0]["created_at"] >= orders[1]["created_at"]
