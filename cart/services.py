"""Cart services: creation, line mutations and the guest-to-user merge.

Every mutation locks the cart row with ``select_for_update`` inside
``transaction.atomic`` so read-modify-write on a cart is serialized, and
requires the cart to be OPEN.
"""

import logging
import uuid
from typing import Optional

from catalog.models import Product
from common.exceptions import (
    CartMergeConflict,
    EntityNotFound,
    InsufficientStock,
    InvalidCartState,
    ValidationFailure,
)
from django.db import transaction
from inventory.selectors import available_quantity
from inventory.services import has_sufficient_stock
from users.services import find_registered_user

from .models import Cart, CartItem
from .selectors import find_cart, get_open_cart_for_user

logger = logging.getLogger("storefront.cart")


def _validate_quantity(quantity) -> int:
    if quantity is None or int(quantity) < 1:
        raise ValidationFailure("quantity", quantity, "Quantity must be positive")
    return int(quantity)


def _lock_open_cart(cart_id: int, operation: str) -> Cart:
    try:
        cart = Cart.objects.select_for_update().get(id=cart_id)
    except (Cart.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Cart", cart_id)
    if cart.status != Cart.STATUS_OPEN:
        raise InvalidCartState(cart.id, cart.status, Cart.STATUS_OPEN, operation)
    return cart


def _require_stock(product: Product, quantity: int) -> None:
    if not has_sufficient_stock(product_id=product.id, quantity=quantity):
        raise InsufficientStock(product.id, quantity, available_quantity(product.id), sku=product.sku)


def _touch(cart: Cart) -> None:
    cart.save(update_fields=["updated_at"])


def create_cart_for_guest(*, session_id: Optional[str] = None) -> Cart:
    """Create a new OPEN guest cart; a session id is generated when absent."""

    cart = Cart.objects.create(user=None, session_id=session_id or uuid.uuid4().hex, status=Cart.STATUS_OPEN)
    logger.info(
        "cart.created",
        extra={"event": "cart.created", "cart_id": cart.id, "session_id": cart.session_id, "guest": True},
    )
    return cart


@transaction.atomic
def create_cart_for_user(*, user_id: int) -> Cart:
    """Return the user's OPEN cart, creating one only when none exists."""

    user = find_registered_user(user_id)
    cart, created = Cart.objects.get_or_create(user=user, status=Cart.STATUS_OPEN)
    if created:
        logger.info(
            "cart.created",
            extra={"event": "cart.created", "cart_id": cart.id, "user_id": user.id, "guest": False},
        )
    return cart


@transaction.atomic
def add_item(*, cart_id: int, product_id: int, quantity: int) -> CartItem:
    """Add a product to the cart, summing into an existing line.

    The unit price is frozen from the product's current price when the line
    is first created. Stock is validated against the resulting quantity.
    """

    quantity = _validate_quantity(quantity)
    cart = _lock_open_cart(cart_id, "add_item")
    try:
        product = Product.objects.get(id=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Product", product_id)
    if not product.is_active:
        raise ValidationFailure("product_id", product_id, "Product is not active")

    item = CartItem.objects.filter(cart=cart, product=product).first()
    if item is not None:
        combined = int(item.quantity) + quantity
        _require_stock(product, combined)
        item.quantity = combined
        item.save(update_fields=["quantity", "updated_at"])
        event = "cart.item_updated"
    else:
        _require_stock(product, quantity)
        item = CartItem.objects.create(cart=cart, product=product, quantity=quantity, unit_price=product.price)
        event = "cart.item_added"
    _touch(cart)
    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "product_id": product.id,
            "quantity": int(item.quantity),
            "guest": cart.is_guest,
        },
    )
    return item


@transaction.atomic
def update_item_quantity(*, cart_id: int, product_id: int, quantity: int) -> CartItem:
    """Replace the quantity of an existing line after re-validating stock."""

    quantity = _validate_quantity(quantity)
    cart = _lock_open_cart(cart_id, "update_item_quantity")
    item = CartItem.objects.select_related("product").filter(cart=cart, product_id=product_id).first()
    if item is None:
        raise ValidationFailure("product_id", product_id, "Product is not in the cart")
    _require_stock(item.product, quantity)
    item.quantity = quantity
    item.save(update_fields=["quantity", "updated_at"])
    _touch(cart)
    logger.info(
        "cart.item_updated",
        extra={
            "event": "cart.item_updated",
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "product_id": item.product_id,
            "quantity": quantity,
            "guest": cart.is_guest,
        },
    )
    return item


@transaction.atomic
def remove_item(*, cart_id: int, product_id: int) -> None:
    cart = _lock_open_cart(cart_id, "remove_item")
    deleted, _ = CartItem.objects.filter(cart=cart, product_id=product_id).delete()
    if not deleted:
        raise ValidationFailure("product_id", product_id, "Product is not in the cart")
    _touch(cart)
    logger.info(
        "cart.item_removed",
        extra={
            "event": "cart.item_removed",
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "product_id": product_id,
            "guest": cart.is_guest,
        },
    )


@transaction.atomic
def clear_cart(*, cart_id: int) -> Cart:
    """Remove every line; the cart stays OPEN."""

    cart = _lock_open_cart(cart_id, "clear_cart")
    CartItem.objects.filter(cart=cart).delete()
    _touch(cart)
    logger.info(
        "cart.cleared",
        extra={"event": "cart.cleared", "cart_id": cart.id, "user_id": cart.user_id, "guest": cart.is_guest},
    )
    return cart


@transaction.atomic
def merge_guest_cart_to_user_cart(*, guest_cart_id: int, user_id: int) -> Cart:
    """Fold a guest cart into the user's OPEN cart and retire the guest cart.

    Guest lines are applied in product id order. A product present in both
    carts ends up as one line with the summed quantity, keeping the unit
    price and ``added_at`` of whichever line was added more recently. Every
    line is stock-checked before anything is written; on failure neither
    cart changes.
    """

    guest = find_cart(guest_cart_id)
    if guest.user_id is not None:
        raise CartMergeConflict(guest.id, None, "Guest cart already belongs to a user")
    if guest.status != Cart.STATUS_OPEN:
        raise InvalidCartState(guest.id, guest.status, Cart.STATUS_OPEN, "merge")
    user = find_registered_user(user_id)
    target = get_open_cart_for_user(user_id=user.id)

    # Lock both rows in id order, then re-check what may have changed meanwhile.
    locked = {c.id: c for c in Cart.objects.select_for_update().filter(id__in=[guest.id, target.id]).order_by("id")}
    guest, target = locked[guest.id], locked[target.id]
    if guest.user_id is not None:
        raise CartMergeConflict(guest.id, target.id, "Guest cart already belongs to a user")
    if guest.status != Cart.STATUS_OPEN:
        raise InvalidCartState(guest.id, guest.status, Cart.STATUS_OPEN, "merge")

    existing = {item.product_id: item for item in target.items.all()}
    plan = []
    for line in guest.items.select_related("product").order_by("product_id"):
        current = existing.get(line.product_id)
        combined = int(line.quantity) + (int(current.quantity) if current else 0)
        _require_stock(line.product, combined)
        plan.append((line, current, combined))

    for line, current, combined in plan:
        if current is None:
            line.cart = target
            line.save(update_fields=["cart", "updated_at"])
            continue
        if line.added_at > current.added_at:
            current.unit_price = line.unit_price
            current.added_at = line.added_at
        current.quantity = combined
        current.save(update_fields=["quantity", "unit_price", "added_at", "updated_at"])
        line.delete()

    guest.status = Cart.STATUS_ABANDONED
    guest.save(update_fields=["status", "updated_at"])
    _touch(target)
    logger.info(
        "cart.merged",
        extra={
            "event": "cart.merged",
            "guest_cart_id": guest.id,
            "cart_id": target.id,
            "user_id": user.id,
            "lines": len(plan),
        },
    )
    return target
