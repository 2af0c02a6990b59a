from datetime import timedelta
from decimal import Decimal

import pytest
from cart.models import Cart, CartItem
from cart.services import merge_guest_cart_to_user_cart
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory
from catalog.tests.factories import ProductFactory
from common.exceptions import CartMergeConflict, EntityNotFound, InsufficientStock, InvalidCartState
from django.utils import timezone
from inventory.tests.factories import StockItemFactory
from users.tests.factories import UserFactory


@pytest.mark.django_db
def test_merge_sums_shared_product_and_abandons_guest():
    user = UserFactory()
    product = ProductFactory()
    StockItemFactory(product=product, quantity=10)
    user_cart = CartFactory(user=user)
    CartItemFactory(cart=user_cart, product=product, quantity=3)
    guest = GuestCartFactory()
    CartItemFactory(cart=guest, product=product, quantity=2)

    merged = merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)

    assert merged.id == user_cart.id
    lines = list(CartItem.objects.filter(cart=user_cart))
    assert len(lines) == 1
    assert lines[0].quantity == 5
    guest.refresh_from_db()
    assert guest.status == Cart.STATUS_ABANDONED
    assert guest.items.count() == 0


@pytest.mark.django_db
def test_merge_moves_new_lines_preserving_added_at():
    user = UserFactory()
    product = ProductFactory(price=Decimal("7.00"))
    StockItemFactory(product=product, quantity=10)
    guest = GuestCartFactory()
    added = timezone.now() - timedelta(days=2)
    line = CartItemFactory(cart=guest, product=product, quantity=2, added_at=added)

    merged = merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)

    line.refresh_from_db()
    assert line.cart_id == merged.id
    assert line.added_at == added
    assert line.unit_price == Decimal("7.00")
    assert merged.user_id == user.id
    assert merged.status == Cart.STATUS_OPEN


@pytest.mark.django_db
def test_merge_keeps_price_of_more_recent_line():
    user = UserFactory()
    product = ProductFactory()
    StockItemFactory(product=product, quantity=10)
    now = timezone.now()
    user_cart = CartFactory(user=user)
    CartItemFactory(
        cart=user_cart, product=product, quantity=1, unit_price=Decimal("8.00"), added_at=now - timedelta(days=3)
    )
    guest = GuestCartFactory()
    CartItemFactory(cart=guest, product=product, quantity=1, unit_price=Decimal("9.50"), added_at=now)

    merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)

    line = CartItem.objects.get(cart=user_cart, product=product)
    assert line.quantity == 2
    assert line.unit_price == Decimal("9.50")
    assert line.added_at == now


@pytest.mark.django_db
def test_merge_keeps_user_price_when_user_line_is_newer():
    user = UserFactory()
    product = ProductFactory()
    StockItemFactory(product=product, quantity=10)
    now = timezone.now()
    user_cart = CartFactory(user=user)
    CartItemFactory(cart=user_cart, product=product, quantity=1, unit_price=Decimal("8.00"), added_at=now)
    guest = GuestCartFactory()
    CartItemFactory(
        cart=guest, product=product, quantity=1, unit_price=Decimal("9.50"), added_at=now - timedelta(hours=1)
    )

    merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)

    line = CartItem.objects.get(cart=user_cart, product=product)
    assert line.unit_price == Decimal("8.00")
    assert line.added_at == now


@pytest.mark.django_db
def test_merge_stock_failure_changes_neither_cart():
    user = UserFactory()
    plenty = ProductFactory()
    scarce = ProductFactory()
    StockItemFactory(product=plenty, quantity=10)
    StockItemFactory(product=scarce, quantity=3)
    user_cart = CartFactory(user=user)
    CartItemFactory(cart=user_cart, product=scarce, quantity=2)
    guest = GuestCartFactory()
    CartItemFactory(cart=guest, product=plenty, quantity=1)
    CartItemFactory(cart=guest, product=scarce, quantity=2)

    with pytest.raises(InsufficientStock) as exc:
        merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)
    assert exc.value.requested == 4

    guest.refresh_from_db()
    assert guest.status == Cart.STATUS_OPEN
    assert guest.items.count() == 2
    assert list(user_cart.items.values_list("product_id", "quantity")) == [(scarce.id, 2)]


@pytest.mark.django_db
def test_merge_creates_user_cart_when_missing():
    user = UserFactory()
    guest = GuestCartFactory()
    merged = merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)
    assert merged.user_id == user.id
    assert Cart.objects.filter(user=user, status=Cart.STATUS_OPEN).count() == 1


@pytest.mark.django_db
def test_merge_preconditions():
    user = UserFactory()
    with pytest.raises(EntityNotFound):
        merge_guest_cart_to_user_cart(guest_cart_id=999999, user_id=user.id)

    owned = CartFactory()
    with pytest.raises(CartMergeConflict):
        merge_guest_cart_to_user_cart(guest_cart_id=owned.id, user_id=user.id)

    retired = GuestCartFactory(status=Cart.STATUS_ABANDONED)
    with pytest.raises(InvalidCartState):
        merge_guest_cart_to_user_cart(guest_cart_id=retired.id, user_id=user.id)

    guest = GuestCartFactory()
    with pytest.raises(EntityNotFound):
        merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=999999)
    guest.refresh_from_db()
    assert guest.status == Cart.STATUS_OPEN


def _merge_snapshot(product_a, guest_lines, added_at):
    """Merge a guest cart built from `guest_lines` into a fresh user cart holding one unit of `product_a`."""

    user = UserFactory()
    user_cart = CartFactory(user=user)
    CartItemFactory(
        cart=user_cart, product=product_a, quantity=1, unit_price=Decimal("9.00"), added_at=added_at["user"]
    )
    guest = GuestCartFactory()
    for product, quantity in guest_lines:
        CartItemFactory(
            cart=guest, product=product, quantity=quantity, unit_price=product.price, added_at=added_at[product.id]
        )

    merged = merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=user.id)
    return [
        (line.product_id, line.quantity, line.unit_price, line.added_at)
        for line in CartItem.objects.filter(cart=merged).order_by("product_id")
    ]


@pytest.mark.django_db
def test_merge_result_does_not_depend_on_guest_line_order():
    product_a = ProductFactory(price=Decimal("10.00"))
    product_b = ProductFactory(price=Decimal("4.00"))
    for product in (product_a, product_b):
        StockItemFactory(product=product, quantity=20)
    now = timezone.now()
    added_at = {"user": now - timedelta(days=3), product_a.id: now - timedelta(days=1), product_b.id: now}

    forward = _merge_snapshot(product_a, [(product_a, 2), (product_b, 3)], added_at)
    reverse = _merge_snapshot(product_a, [(product_b, 3), (product_a, 2)], added_at)

    assert forward == reverse
    assert forward == [
        (product_a.id, 3, Decimal("10.00"), added_at[product_a.id]),
        (product_b.id, 3, Decimal("4.00"), added_at[product_b.id]),
    ]
