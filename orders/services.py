"""Order services: checkout and payment recording.

Checkout turns an OPEN cart into an immutable order in a single
transaction: every precondition is checked (with the cart and stock rows
locked) before the first write, so a failure leaves no trace.
"""

import logging
import secrets

from cart.models import Cart
from common import money
from common.choices import Currency, PaymentMethod, PaymentStatus
from common.exceptions import (
    DuplicateEntity,
    EntityNotFound,
    InvalidCartState,
    ValidationFailure,
)
from customer.services import find_address_for_user
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from inventory.services import decrement_many, lock_and_validate
from users.services import find_registered_user

from . import pricing
from .models import Order, OrderItem, Payment
from .selectors import find_order

logger = logging.getLogger("storefront.orders")


def _random_suffix() -> int:
    return secrets.randbelow(1_000_000)


def generate_order_number() -> str:
    """Return an unused `<prefix><YYYYMMDD>-<6 digits>` order number.

    Raises DuplicateEntity when every attempt collides with an existing order.
    """

    prefix = settings.STORE_ORDER_NUMBER_PREFIX
    attempts = int(settings.STORE_ORDER_NUMBER_MAX_ATTEMPTS)
    candidate = ""
    for _ in range(attempts):
        candidate = f"{prefix}{timezone.now():%Y%m%d}-{_random_suffix():06d}"
        if not Order.objects.filter(number=candidate).exists():
            return candidate
        logger.warning("order.number_collision", extra={"event": "order.number_collision", "number": candidate})
    raise DuplicateEntity("Order", "number", candidate)


@transaction.atomic
def checkout(*, user_id: int, cart_id: int, shipping_address_id: int, billing_address_id: int) -> Order:
    """Convert the user's OPEN cart into an order.

    Preconditions are checked in this order: active user, open cart,
    non-empty cart, cart ownership, address ownership, then product
    availability for every line. Stock rows stay locked from the check
    until commit, and the decrement itself is conditional, so two checkouts
    racing for the last unit cannot both succeed.
    """

    user = find_registered_user(user_id)
    if not user.is_active:
        raise ValidationFailure("user_id", user_id, "User is not active")

    try:
        cart = Cart.objects.select_for_update().get(id=cart_id)
    except (Cart.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Cart", cart_id)
    if cart.status != Cart.STATUS_OPEN:
        raise InvalidCartState(cart.id, cart.status, Cart.STATUS_OPEN, "checkout")

    items = list(cart.items.select_related("product").order_by("product_id"))
    if not items:
        raise ValidationFailure("cart_id", cart_id, "Cart is empty")
    if cart.user_id != user.id:
        raise ValidationFailure("cart_id", cart_id, "Cart does not belong to this user")

    shipping = find_address_for_user(address_id=shipping_address_id, user_id=user.id, field="shipping_address_id")
    billing = find_address_for_user(address_id=billing_address_id, user_id=user.id, field="billing_address_id")

    for item in items:
        if not item.product.is_active:
            raise ValidationFailure("product_id", item.product_id, "Product is not active")
    quantities = {item.product_id: int(item.quantity) for item in items}
    lock_and_validate(quantities=quantities)

    totals = pricing.order_totals(pricing.subtotal((item.unit_price, item.quantity) for item in items))
    order = Order.objects.create(
        user=user,
        number=generate_order_number(),
        shipping_address=shipping,
        billing_address=billing,
        **totals,
    )
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product=item.product,
                product_name=item.product.name,
                product_sku=item.product.sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=pricing.line_total(item.unit_price, item.quantity),
            )
            for item in items
        ]
    )
    decrement_many(quantities=quantities, reason="checkout", reference=f"order:{order.number}")

    cart.status = Cart.STATUS_CONVERTED
    cart.save(update_fields=["status", "updated_at"])
    logger.info(
        "order.created",
        extra={
            "event": "order.created",
            "order_id": order.id,
            "number": order.number,
            "user_id": user.id,
            "cart_id": cart.id,
            "lines": len(items),
            "total": str(order.total),
        },
    )
    return order


@transaction.atomic
def record_payment(
    *,
    order_id: int,
    amount,
    method: str,
    status: str = PaymentStatus.PENDING,
    currency: str = "",
    provider_reference: str = "",
) -> Payment:
    """Append a payment outcome to an order; `paid_at` is set for completed payments."""

    order = find_order(order_id)
    amount = money.normalize(amount)
    if not money.is_positive(amount):
        raise ValidationFailure("amount", amount, "Payment amount must be positive")
    if method not in PaymentMethod.values:
        raise ValidationFailure("method", method, "Unknown payment method")
    if status not in PaymentStatus.values:
        raise ValidationFailure("status", status, "Unknown payment status")
    currency = (currency or settings.STORE_DEFAULT_CURRENCY).upper()
    if currency not in Currency.values:
        raise ValidationFailure("currency", currency, "Unsupported currency")

    payment = Payment.objects.create(
        order=order,
        amount=amount,
        method=method,
        status=status,
        currency=currency,
        provider_reference=(provider_reference or "").strip(),
        paid_at=timezone.now() if status == PaymentStatus.COMPLETED else None,
    )
    logger.info(
        "payment.recorded",
        extra={
            "event": "payment.recorded",
            "order_id": order.id,
            "payment_id": payment.id,
            "status": status,
            "amount": str(amount),
        },
    )
    return payment
