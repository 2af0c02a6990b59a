from decimal import Decimal

import pytest
from cart.models import Cart
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory
from catalog.tests.factories import ProductFactory
from customer.tests.factories import AddressFactory
from inventory.selectors import available_quantity
from inventory.tests.factories import StockItemFactory
from rest_framework.test import APIClient
from users.tests.factories import UserFactory


def _client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.mark.django_db
def test_cart_detail_initial_empty():
    resp = _client(UserFactory()).get("/api/v1/cart/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "open"
    assert body["items"] == []
    assert body["subtotal"] == "0.00"
    assert body["total"] == "0.00"


@pytest.mark.django_db
def test_cart_requires_authentication():
    assert APIClient().get("/api/v1/cart/").status_code in (401, 403)


@pytest.mark.django_db
def test_add_update_delete_item_flow():
    user = UserFactory()
    product = ProductFactory(price=Decimal("10.00"))
    StockItemFactory(product=product, quantity=5)
    client = _client(user)

    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")
    assert resp.status_code == 201
    assert resp.json()["quantity"] == 2

    resp = client.patch(f"/api/v1/cart/items/{product.id}/", {"quantity": 3}, format="json")
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 3

    body = client.get("/api/v1/cart/").json()
    assert body["items"][0]["product_id"] == product.id
    assert body["subtotal"] == "30.00"
    assert body["item_count"] == 3

    resp = client.delete(f"/api/v1/cart/items/{product.id}/delete/")
    assert resp.status_code == 204
    assert client.get("/api/v1/cart/").json()["items"] == []


@pytest.mark.django_db
def test_add_item_errors_map_to_status_codes():
    user = UserFactory()
    product = ProductFactory()
    StockItemFactory(product=product, quantity=1)
    client = _client(user)

    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")
    assert resp.status_code == 409
    assert resp.json()["code"] == "insufficient_stock"

    resp = client.post("/api/v1/cart/items/", {"product_id": 999999, "quantity": 1}, format="json")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"

    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 0}, format="json")
    assert resp.status_code == 400

    resp = client.patch(f"/api/v1/cart/items/{product.id}/", {"quantity": 1}, format="json")
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_failed"


@pytest.mark.django_db
def test_clear_cart_endpoint():
    user = UserFactory()
    cart = CartFactory(user=user)
    CartItemFactory(cart=cart)
    resp = _client(user).post("/api/v1/cart/clear/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "cleared"}
    assert cart.items.count() == 0


@pytest.mark.django_db
def test_merge_guest_endpoint():
    user = UserFactory()
    product = ProductFactory()
    StockItemFactory(product=product, quantity=10)
    guest = GuestCartFactory(session_id="sess-merge")
    CartItemFactory(cart=guest, product=product, quantity=2)
    client = _client(user)

    resp = client.post("/api/v1/cart/merge-guest/", HTTP_X_SESSION_ID="sess-merge")
    assert resp.status_code == 200
    body = resp.json()
    assert body["items"][0]["quantity"] == 2
    guest.refresh_from_db()
    assert guest.status == Cart.STATUS_ABANDONED

    assert client.post("/api/v1/cart/merge-guest/").status_code == 400
    resp = client.post("/api/v1/cart/merge-guest/", HTTP_X_SESSION_ID="sess-merge")
    assert resp.status_code == 404


@pytest.mark.django_db
def test_checkout_endpoint_creates_order():
    user = UserFactory()
    address = AddressFactory(user=user)
    product = ProductFactory(price=Decimal("75.00"))
    StockItemFactory(product=product, quantity=3)
    cart = CartFactory(user=user)
    CartItemFactory(cart=cart, product=product, quantity=2)

    resp = _client(user).post(
        "/api/v1/cart/checkout/",
        {"shipping_address_id": address.id, "billing_address_id": address.id},
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["number"].startswith("ORD-")
    assert body["subtotal"] == "150.00"
    assert body["tax"] == "28.50"
    assert body["shipping_cost"] == "0.00"
    assert body["total"] == "178.50"
    assert available_quantity(product.id) == 1
    cart.refresh_from_db()
    assert cart.status == Cart.STATUS_CONVERTED


@pytest.mark.django_db
def test_checkout_empty_cart_is_rejected():
    user = UserFactory()
    address = AddressFactory(user=user)
    resp = _client(user).post(
        "/api/v1/cart/checkout/",
        {"shipping_address_id": address.id, "billing_address_id": address.id},
        format="json",
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_failed"
