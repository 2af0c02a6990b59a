"""Selectors for read-only cart queries (plus get-or-create of open carts)."""

from decimal import Decimal

from common import money
from common.exceptions import EntityNotFound
from users.services import find_registered_user

from .models import Cart


def find_cart(cart_id: int) -> Cart:
    try:
        return Cart.objects.get(id=cart_id)
    except (Cart.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Cart", cart_id)


def get_open_cart_for_user(*, user_id: int) -> Cart:
    """Return the user's open cart, creating it if missing."""

    user = find_registered_user(user_id)
    cart, _ = Cart.objects.get_or_create(user=user, status=Cart.STATUS_OPEN)
    return cart


def get_open_cart_for_session(*, session_id: str) -> Cart:
    """Return the guest session's open cart, creating it if missing."""

    cart = (
        Cart.objects.filter(user__isnull=True, session_id=session_id, status=Cart.STATUS_OPEN)
        .order_by("-updated_at", "-id")
        .first()
    )
    if cart is None:
        cart = Cart.objects.create(user=None, session_id=session_id, status=Cart.STATUS_OPEN)
    return cart


def cart_total(cart: Cart) -> Decimal:
    """Sum of `unit_price x quantity` over the cart's lines; 0.00 when empty."""

    return money.sum_amounts(item.line_total for item in cart.items.all())


def cart_totals(*, cart: Cart):
    total = cart_total(cart)
    return {
        "item_count": sum(int(item.quantity) for item in cart.items.all()),
        "subtotal": total,
        "total": total,
    }


def find_open_cart_for_session(*, session_id: str) -> Cart:
    """Return the guest session's open cart without creating one."""

    cart = (
        Cart.objects.filter(user__isnull=True, session_id=session_id, status=Cart.STATUS_OPEN)
        .order_by("-updated_at", "-id")
        .first()
    )
    if cart is None:
        raise EntityNotFound("Cart", {"session_id": session_id})
    return cart
