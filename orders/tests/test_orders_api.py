from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from orders.models import Order
from rest_framework.test import APIClient
from users.tests.factories import UserFactory

from .factories import OrderFactory, OrderItemFactory


def _client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.mark.django_db
def test_list_orders_only_shows_own_orders():
    user = UserFactory()
    mine = OrderFactory(user=user)
    OrderItemFactory(order=mine)
    OrderFactory()

    resp = _client(user).get("/api/v1/orders/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    result = body["results"][0]
    assert result["number"] == mine.number
    assert result["total"] == "119.00"
    assert len(result["items"]) == 1
    assert result["is_paid"] is False


@pytest.mark.django_db
def test_list_orders_filters():
    user = UserFactory()
    old = OrderFactory(user=user, number="ORD-20240101-000001")
    recent = OrderFactory(user=user, number="ORD-20250101-000002")
    Order.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=30))
    client = _client(user)

    resp = client.get("/api/v1/orders/", {"number": "ord-20240101-000001"})
    assert [o["id"] for o in resp.json()["results"]] == [old.id]

    start = (timezone.now() - timedelta(days=1)).isoformat()
    resp = client.get("/api/v1/orders/", {"start": start})
    assert [o["id"] for o in resp.json()["results"]] == [recent.id]


@pytest.mark.django_db
def test_order_detail_and_foreign_order():
    user = UserFactory()
    order = OrderFactory(user=user)
    foreign = OrderFactory()
    client = _client(user)

    resp = client.get(f"/api/v1/orders/{order.id}/")
    assert resp.status_code == 200
    assert resp.json()["subtotal"] == "100.00"

    assert client.get(f"/api/v1/orders/{foreign.id}/").status_code == 404


@pytest.mark.django_db
def test_record_payment_endpoint():
    user = UserFactory()
    order = OrderFactory(user=user)
    client = _client(user)

    resp = client.post(
        f"/api/v1/orders/{order.id}/payments/",
        {"amount": "119.00", "method": "card", "status": "completed", "provider_reference": "ch_123"},
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "completed"
    assert body["paid_at"] is not None

    detail = client.get(f"/api/v1/orders/{order.id}/").json()
    assert detail["amount_paid"] == "119.00"
    assert detail["is_paid"] is True
    assert Decimal(detail["payments"][0]["amount"]) == Decimal("119.00")


@pytest.mark.django_db
def test_record_payment_rejects_bad_input_and_foreign_orders():
    user = UserFactory()
    order = OrderFactory(user=user)
    foreign = OrderFactory()
    client = _client(user)

    resp = client.post(f"/api/v1/orders/{order.id}/payments/", {"amount": "0", "method": "card"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_failed"

    resp = client.post(f"/api/v1/orders/{order.id}/payments/", {"amount": "5", "method": "crypto"}, format="json")
    assert resp.status_code == 400

    resp = client.post(f"/api/v1/orders/{foreign.id}/payments/", {"amount": "5", "method": "card"}, format="json")
    assert resp.status_code == 404
    assert foreign.payments.count() == 0


@pytest.mark.django_db
def test_orders_require_authentication():
    assert APIClient().get("/api/v1/orders/").status_code in (401, 403)
