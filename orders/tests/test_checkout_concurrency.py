import threading
from typing import List

import pytest
from cart.tests.factories import CartFactory, CartItemFactory
from catalog.tests.factories import ProductFactory
from common.exceptions import InsufficientStock
from customer.tests.factories import AddressFactory
from django.db import close_old_connections, connection
from inventory.selectors import available_quantity
from inventory.tests.factories import StockItemFactory
from orders.models import Order
from orders.services import checkout
from users.tests.factories import UserFactory


def _checkout_worker(barrier: threading.Barrier, kwargs: dict, successes: List[str], failures: List[Exception]):
    close_old_connections()
    barrier.wait()
    try:
        order = checkout(**kwargs)
        successes.append(order.number)
    except InsufficientStock as exc:
        failures.append(exc)
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
def test_threaded_checkouts_for_last_unit():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    product = ProductFactory()
    StockItemFactory(product=product, quantity=1)
    calls = []
    for _ in range(2):
        user = UserFactory()
        address = AddressFactory(user=user)
        cart = CartFactory(user=user)
        CartItemFactory(cart=cart, product=product, quantity=1)
        calls.append(
            {
                "user_id": user.id,
                "cart_id": cart.id,
                "shipping_address_id": address.id,
                "billing_address_id": address.id,
            }
        )

    barrier = threading.Barrier(2)
    successes: List[str] = []
    failures: List[Exception] = []
    threads = [threading.Thread(target=_checkout_worker, args=(barrier, kw, successes, failures)) for kw in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert len(failures) == 1
    assert available_quantity(product.id) == 0
    assert Order.objects.count() == 1
