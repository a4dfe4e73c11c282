"""Tests for the cart HTTP facade."""

from fastapi.testclient import TestClient

from delivery_cart.api.app import create_app

_ITEM = {
    "menu_item_id": "adobo",
    "name": "Chicken Adobo",
    "price": "100",
    "restaurant_id": "resto-1",
    "restaurant_name": "Lola's Kitchen",
}


def test_health(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_add_item_is_applied_optimistically(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/cart/items", json={**_ITEM, "quantity": 2})

    assert response.status_code == 201
    body = response.json()
    assert body["restaurant_id"] == "resto-1"
    assert body["total_items"] == 2
    assert body["total_price"] == "200"
    assert body["items"][0]["name"] == "Chicken Adobo"
    assert body["items"][0]["updating"] is True
    assert body["has_pending_operations"] is True


def test_add_from_other_restaurant_conflicts(container) -> None:
    with TestClient(create_app(container)) as client:
        client.post("/cart/items", json=_ITEM)
        response = client.post(
            "/cart/items",
            json={**_ITEM, "menu_item_id": "sisig", "restaurant_id": "resto-2"},
        )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["current_restaurant_id"] == "resto-1"
    assert detail["incoming_restaurant_id"] == "resto-2"


def test_update_and_remove_items(container) -> None:
    with TestClient(create_app(container)) as client:
        added = client.post("/cart/items", json=_ITEM).json()
        item_id = added["items"][0]["id"]

        updated = client.patch(f"/cart/items/{item_id}", json={"quantity": 3}).json()
        removed = client.delete(f"/cart/items/{item_id}").json()
        removed_again = client.delete(f"/cart/items/{item_id}")

    assert updated["items"][0]["quantity"] == 3
    assert updated["total_price"] == "300"
    assert removed["items"] == []
    assert removed_again.status_code == 200


def test_pricing_inputs_validation(container) -> None:
    with TestClient(create_app(container)) as client:
        accepted = client.put(
            "/cart/pricing-inputs", json={"promo_code": "first20", "tip": "20"}
        )
        blank_city = client.put("/cart/pricing-inputs", json={"city": "  "})
        negative = client.put("/cart/pricing-inputs", json={"loyalty_points": -5})

    assert accepted.status_code == 200
    assert accepted.json()["inputs"]["promo_code"] == "FIRST20"
    assert accepted.json()["inputs"]["tip"] == "20"
    assert blank_city.status_code == 422
    assert negative.status_code == 422


def test_checkout_empty_cart_is_rejected(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/checkout", json={"payment_provider": "cod"})

    assert response.status_code == 400


def test_notifications_start_empty(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/notifications")

    assert response.json() == {"notifications": []}


def test_add_item_with_taken_id_is_rejected(container) -> None:
    with TestClient(create_app(container)) as client:
        client.post("/cart/items", json={**_ITEM, "id": "line-1"})
        response = client.post(
            "/cart/items", json={**_ITEM, "menu_item_id": "sisig", "id": "line-1"}
        )
        cart = client.get("/cart").json()

    assert response.status_code == 422
    assert [item["id"] for item in cart["items"]] == ["line-1"]
