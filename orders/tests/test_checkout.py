from decimal import Decimal

import pytest
from cart.models import Cart
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory
from catalog.tests.factories import ProductFactory
from common.exceptions import (
    DuplicateEntity,
    EntityNotFound,
    InsufficientStock,
    InvalidCartState,
    ValidationFailure,
)
from customer.tests.factories import AddressFactory
from inventory.models import StockMovement
from inventory.selectors import available_quantity
from inventory.tests.factories import StockItemFactory
from orders import services
from orders.models import Order
from orders.services import checkout, generate_order_number
from users.tests.factories import UserFactory


def _ready_cart(price="75.00", quantity=2, stock=5):
    user = UserFactory()
    address = AddressFactory(user=user)
    product = ProductFactory(price=Decimal(price))
    StockItemFactory(product=product, quantity=stock)
    cart = CartFactory(user=user)
    CartItemFactory(cart=cart, product=product, quantity=quantity)
    return user, address, product, cart


@pytest.mark.django_db
def test_checkout_creates_immutable_snapshot():
    user, address, product, cart = _ready_cart()

    order = checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)

    assert order.subtotal == Decimal("150.00")
    assert order.tax == Decimal("28.50")
    assert order.shipping_cost == Decimal("0.00")
    assert order.total == Decimal("178.50")
    item = order.items.get()
    assert item.product_name == product.name
    assert item.product_sku == product.sku
    assert item.unit_price == Decimal("75.00")
    assert item.line_total == Decimal("150.00")
    assert available_quantity(product.id) == 3
    cart.refresh_from_db()
    assert cart.status == Cart.STATUS_CONVERTED
    assert StockMovement.objects.filter(reference=f"order:{order.number}").count() == 1

    with pytest.raises(ValueError):
        order.save()

    line = order.items.get()
    line.quantity = 99
    line.unit_price = Decimal("0.00")
    with pytest.raises(ValueError):
        line.save()
    line.refresh_from_db()
    assert line.quantity == 2
    assert line.unit_price == Decimal("75.00")


@pytest.mark.django_db
def test_checkout_uses_frozen_price_not_current_price():
    user, address, product, cart = _ready_cart(price="20.00", quantity=1)
    product.price = Decimal("99.00")
    product.save()
    order = checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    assert order.subtotal == Decimal("20.00")
    # 20.00 + 3.80 tax + 5.40 shipping
    assert order.total == Decimal("29.20")


@pytest.mark.django_db
def test_converted_cart_cannot_be_checked_out_again():
    user, address, _, cart = _ready_cart()
    checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    with pytest.raises(InvalidCartState):
        checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)


@pytest.mark.django_db
def test_checkout_insufficient_stock_leaves_no_trace():
    user, address, product, cart = _ready_cart(quantity=2, stock=5)
    scarce = ProductFactory()
    StockItemFactory(product=scarce, quantity=1)
    CartItemFactory(cart=cart, product=scarce, quantity=2)

    with pytest.raises(InsufficientStock) as exc:
        checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    assert exc.value.product_id == scarce.id

    assert Order.objects.count() == 0
    assert available_quantity(product.id) == 5
    assert available_quantity(scarce.id) == 1
    cart.refresh_from_db()
    assert cart.status == Cart.STATUS_OPEN


@pytest.mark.django_db
def test_checkout_preconditions():
    user, address, product, cart = _ready_cart()
    ids = {"shipping_address_id": address.id, "billing_address_id": address.id}

    with pytest.raises(EntityNotFound):
        checkout(user_id=999999, cart_id=cart.id, **ids)
    with pytest.raises(EntityNotFound):
        checkout(user_id=user.id, cart_id=999999, **ids)

    stranger = UserFactory()
    stranger_address = AddressFactory(user=stranger)
    with pytest.raises(ValidationFailure) as exc:
        checkout(
            user_id=stranger.id,
            cart_id=cart.id,
            shipping_address_id=stranger_address.id,
            billing_address_id=stranger_address.id,
        )
    assert exc.value.field == "cart_id"

    with pytest.raises(ValidationFailure) as exc:
        checkout(
            user_id=user.id,
            cart_id=cart.id,
            shipping_address_id=stranger_address.id,
            billing_address_id=address.id,
        )
    assert exc.value.field == "shipping_address_id"

    with pytest.raises(EntityNotFound):
        checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=999999)

    product.is_active = False
    product.save()
    with pytest.raises(ValidationFailure) as exc:
        checkout(user_id=user.id, cart_id=cart.id, **ids)
    assert exc.value.field == "product_id"
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_checkout_inactive_user():
    user, address, _, cart = _ready_cart()
    user.is_active = False
    user.save()
    with pytest.raises(ValidationFailure) as exc:
        checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    assert exc.value.field == "user_id"


@pytest.mark.django_db
def test_checkout_empty_and_guest_carts():
    user = UserFactory()
    address = AddressFactory(user=user)
    empty = CartFactory(user=user)
    with pytest.raises(ValidationFailure):
        checkout(user_id=user.id, cart_id=empty.id, shipping_address_id=address.id, billing_address_id=address.id)

    guest = GuestCartFactory()
    CartItemFactory(cart=guest)
    with pytest.raises(ValidationFailure) as exc:
        checkout(user_id=user.id, cart_id=guest.id, shipping_address_id=address.id, billing_address_id=address.id)
    assert exc.value.field == "cart_id"


@pytest.mark.django_db
def test_last_unit_second_checkout_fails():
    product = ProductFactory()
    StockItemFactory(product=product, quantity=1)
    carts = []
    for _ in range(2):
        user = UserFactory()
        address = AddressFactory(user=user)
        cart = CartFactory(user=user)
        CartItemFactory(cart=cart, product=product, quantity=1)
        carts.append((user, address, cart))

    user, address, cart = carts[0]
    checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    user, address, cart = carts[1]
    with pytest.raises(InsufficientStock):
        checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)

    assert available_quantity(product.id) == 0
    assert Order.objects.count() == 1
    cart.refresh_from_db()
    assert cart.status == Cart.STATUS_OPEN


@pytest.mark.django_db
def test_generate_order_number_format():
    number = generate_order_number()
    prefix, rest = number[:4], number[4:]
    assert prefix == "ORD-"
    date_part, suffix = rest.split("-")
    assert len(date_part) == 8 and date_part.isdigit()
    assert len(suffix) == 6 and suffix.isdigit()


@pytest.mark.django_db
def test_generate_order_number_retries_on_collision(monkeypatch):
    user, address, _, cart = _ready_cart()
    first = checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    taken = int(first.number.rsplit("-", 1)[1])
    suffixes = iter([taken, taken, taken + 1 if taken < 999999 else 0])
    monkeypatch.setattr(services, "_random_suffix", lambda: next(suffixes))

    number = generate_order_number()
    assert number != first.number


@pytest.mark.django_db
def test_generate_order_number_gives_up(monkeypatch):
    user, address, _, cart = _ready_cart()
    first = checkout(user_id=user.id, cart_id=cart.id, shipping_address_id=address.id, billing_address_id=address.id)
    taken = int(first.number.rsplit("-", 1)[1])
    monkeypatch.setattr(services, "_random_suffix", lambda: taken)

    with pytest.raises(DuplicateEntity):
        generate_order_number()
