"""Tests for order endpoints."""

from fastapi.testclient import TestClient


def create_product(client: TestClient, stock: int = 10, price: str = "50.00", sku: str = "WID-1") -> dict:
    response = client.post(
        "/products",
        json={"name": "Widget", "sku": sku, "price": price, "stock_quantity": stock, "min_stock_threshold": 2},
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_customer(client: TestClient, email: str = "ada@example.com") -> dict:
    response = client.post(
        "/customers",
        json={"first_name": "Ada", "last_name": "Lovelace", "email": email},
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_order(client: TestClient, customer_id: str, *lines: tuple[str, int]) -> dict:
    response = client.post(
        "/orders",
        json={
            "customer_id": customer_id,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
            "shipping_address": "12 Analytical Row",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def stock_of(client: TestClient, product_id: str) -> int:
    return client.get(f"/products/{product_id}").json()["stock_quantity"]


class TestCreateOrder:
    """Tests for POST /orders."""

    def test_create_order_takes_stock(self, auth_client: TestClient) -> None:
        """Should create a pending order and reduce stock."""
        product = create_product(auth_client)
        customer = create_customer(auth_client)

        order = create_order(auth_client, customer["id"], (product["id"], 2))

        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["total_amount"] == {"amount": "100.00", "currency": "USD"}
        assert order["item_count"] == 2
        assert order["shipping_address"] == "12 Analytical Row"
        assert stock_of(auth_client, product["id"]) == 8

    def test_actor_header_recorded(self, auth_client: TestClient) -> None:
        """Should record the X-Actor header on audit fields."""
        product = create_product(auth_client)
        customer = create_customer(auth_client)

        response = auth_client.post(
            "/orders",
            json={"customer_id": customer["id"], "items": [{"product_id": product["id"], "quantity": 1}]},
            headers={"X-Actor": "alice"},
        )

        assert response.json()["created_by"] == "alice"

    def test_insufficient_stock(self, auth_client: TestClient) -> None:
        """Should reject with 409 and leave stock untouched."""
        product = create_product(auth_client, stock=1)
        customer = create_customer(auth_client)

        response = auth_client.post(
            "/orders",
            json={"customer_id": customer["id"], "items": [{"product_id": product["id"], "quantity": 5}]},
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "INSUFFICIENT_STOCK"
        assert data["details"]["available"] == 1
        assert data["details"]["requested"] == 5
        assert stock_of(auth_client, product["id"]) == 1

    def test_unknown_customer(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)

        response = auth_client.post(
            "/orders",
            json={
                "customer_id": "00000000-0000-0000-0000-000000000001",
                "items": [{"product_id": product["id"], "quantity": 1}],
            },
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "CUSTOMER_NOT_FOUND"

    def test_non_positive_quantity(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)

        response = auth_client.post(
            "/orders",
            json={"customer_id": customer["id"], "items": [{"product_id": product["id"], "quantity": 0}]},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_QUANTITY"

    def test_malformed_body(self, auth_client: TestClient) -> None:
        """Should reject a body missing required fields."""
        response = auth_client.post("/orders", json={"items": []})

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert any(error["field"].endswith("customer_id") for error in data["details"])

    def test_get_unknown_order(self, auth_client: TestClient) -> None:
        response = auth_client.get("/orders/00000000-0000-0000-0000-000000000001")

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    def test_upper_case_id_reads_fresh_status(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))
        upper = f"/orders/{order['id'].upper()}"
        assert auth_client.get(upper).json()["status"] == "pending"

        auth_client.post(f"/orders/{order['id']}/cancel", json={"reason": "changed mind"})

        assert auth_client.get(upper).json()["status"] == "cancelled"

    def test_list_by_status(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        first = create_order(auth_client, customer["id"], (product["id"], 1))
        second = create_order(auth_client, customer["id"], (product["id"], 1))
        auth_client.post(f"/orders/{first['id']}/process")

        pending = auth_client.get("/orders/status/pending")
        processing = auth_client.get("/orders/status/processing")

        assert pending.status_code == 200
        assert [o["id"] for o in pending.json()] == [second["id"]]
        assert [o["id"] for o in processing.json()] == [first["id"]]

    def test_list_by_unknown_status(self, auth_client: TestClient) -> None:
        response = auth_client.get("/orders/status/lost")

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestOrderItems:
    """Tests for editing lines of a pending order."""

    def test_add_update_remove(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))

        added = auth_client.post(
            f"/orders/{order['id']}/items", json={"product_id": product["id"], "quantity": 2}
        )
        assert added.status_code == 200
        assert len(added.json()["items"]) == 2
        assert stock_of(auth_client, product["id"]) == 7

        item_id = added.json()["items"][1]["id"]
        updated = auth_client.patch(f"/orders/{order['id']}/items/{item_id}", json={"quantity": 4})
        assert updated.status_code == 200
        assert updated.json()["total_amount"]["amount"] == "250.00"
        assert stock_of(auth_client, product["id"]) == 5

        removed = auth_client.delete(f"/orders/{order['id']}/items/{item_id}")
        assert removed.status_code == 200
        assert len(removed.json()["items"]) == 1
        assert stock_of(auth_client, product["id"]) == 9

    def test_unknown_item(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))

        response = auth_client.delete(f"/orders/{order['id']}/items/00000000-0000-0000-0000-000000000002")

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_ITEM_NOT_FOUND"

    def test_items_locked_after_payment(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))
        auth_client.post(f"/orders/{order['id']}/process")
        auth_client.post(f"/orders/{order['id']}/pay", json={"payment_method": "card", "amount": "50.00"})

        response = auth_client.post(
            f"/orders/{order['id']}/items", json={"product_id": product["id"], "quantity": 1}
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "ORDER_NOT_EDITABLE"


class TestOrderLifecycle:
    """Tests for lifecycle transitions."""

    def test_full_lifecycle(self, auth_client: TestClient) -> None:
        """Should walk an order from pending to refunded."""
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 2))
        base = f"/orders/{order['id']}"

        assert auth_client.post(f"{base}/process").json()["status"] == "processing"

        paid = auth_client.post(f"{base}/pay", json={"payment_method": "card", "amount": "100.00"}).json()
        assert paid["status"] == "paid"
        assert paid["payment_status"] == "completed"
        assert paid["payment_method"] == "card"

        shipped = auth_client.post(f"{base}/ship", json={"tracking_number": "TRK-1"}).json()
        assert shipped["status"] == "shipped"
        assert shipped["tracking_number"] == "TRK-1"

        assert auth_client.post(f"{base}/deliver").json()["status"] == "delivered"

        refunded = auth_client.post(f"{base}/refund", json={"reason": "damaged"}).json()
        assert refunded["status"] == "refunded"
        assert refunded["payment_status"] == "refunded"

    def test_payment_amount_must_match_total(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 2))
        auth_client.post(f"/orders/{order['id']}/process")

        response = auth_client.post(
            f"/orders/{order['id']}/pay", json={"payment_method": "card", "amount": "99.99"}
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "PAYMENT_AMOUNT_MISMATCH"

    def test_invalid_transition(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))

        response = auth_client.post(f"/orders/{order['id']}/ship", json={"tracking_number": "TRK-1"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATE_TRANSITION"

    def test_cancel_restores_stock(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 3))

        response = auth_client.post(f"/orders/{order['id']}/cancel", json={"reason": "changed mind"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert stock_of(auth_client, product["id"]) == 10

    def test_cannot_cancel_shipped_order(self, auth_client: TestClient) -> None:
        product = create_product(auth_client)
        customer = create_customer(auth_client)
        order = create_order(auth_client, customer["id"], (product["id"], 1))
        base = f"/orders/{order['id']}"
        auth_client.post(f"{base}/process")
        auth_client.post(f"{base}/pay", json={"payment_method": "card", "amount": "50.00"})
        auth_client.post(f"{base}/ship", json={"tracking_number": "TRK-1"})

        response = auth_client.post(f"{base}/cancel", json={"reason": "too late"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "ORDER_NOT_CANCELLABLE"
        assert stock_of(auth_client, product["id"]) == 9
