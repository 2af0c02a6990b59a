"""Inventory services (single-location): the stock ledger.

All mutations run inside a transaction, lock the affected stock rows with
``select_for_update`` and apply the change as a conditional update, so the
availability check is re-validated at write time even when another
transaction got there first. Decrements are all-or-nothing.
"""

import logging
from typing import Dict, Mapping

from catalog.models import Product
from common.exceptions import EntityNotFound, InsufficientStock, ValidationFailure
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import StockItem, StockMovement

logger = logging.getLogger("storefront.inventory")


def _ensure_product(product_id: int) -> None:
    if not Product.objects.filter(id=product_id).exists():
        raise EntityNotFound("Product", product_id)


def _validate_quantity(quantity: int) -> None:
    if quantity is None or int(quantity) < 1:
        raise ValidationFailure("quantity", quantity, "Quantity must be positive")


def _sku_for(product_id: int) -> str:
    return Product.objects.filter(id=product_id).values_list("sku", flat=True).first() or ""


def has_sufficient_stock(*, product_id: int, quantity: int) -> bool:
    """Return whether `product_id` currently has at least `quantity` units."""

    _validate_quantity(quantity)
    _ensure_product(product_id)
    available = StockItem.objects.filter(product_id=product_id).values_list("quantity", flat=True).first() or 0
    return int(available) >= int(quantity)


def _apply_decrement(item: StockItem, quantity: int, reason: str, reference: str) -> StockMovement:
    updated = StockItem.objects.filter(pk=item.pk, quantity__gte=quantity).update(
        quantity=F("quantity") - quantity, updated_at=timezone.now()
    )
    item.refresh_from_db(fields=["quantity", "updated_at"])
    if not updated:
        raise InsufficientStock(item.product_id, quantity, int(item.quantity), sku=_sku_for(item.product_id))
    return StockMovement.objects.create(
        stock_item=item,
        movement_type=StockMovement.TYPE_OUTBOUND,
        quantity=-int(quantity),
        reason=reason,
        reference=reference,
    )


@transaction.atomic
def decrement(*, product_id: int, quantity: int, reason: str = "", reference: str = "") -> StockMovement:
    """Remove `quantity` units from a product's stock.

    Raises InsufficientStock and leaves the stock untouched when fewer
    units are available.
    """

    _validate_quantity(quantity)
    _ensure_product(product_id)
    item = StockItem.objects.select_for_update().filter(product_id=product_id).first()
    if item is None:
        raise InsufficientStock(product_id, quantity, 0, sku=_sku_for(product_id))
    movement = _apply_decrement(item, int(quantity), reason, reference)
    logger.info(
        "stock.decremented",
        extra={
            "event": "stock.decremented",
            "product_id": product_id,
            "quantity": int(quantity),
            "remaining": int(item.quantity),
            "reference": reference,
        },
    )
    return movement


def lock_and_validate(*, quantities: Mapping[int, int]) -> Dict[int, StockItem]:
    """Lock the stock rows for `quantities` and check every line.

    Rows are locked in product id order and stay locked until the caller's
    transaction ends. Raises on the first product that cannot be served;
    nothing is written.
    """

    product_ids = sorted(quantities)
    for product_id in product_ids:
        _validate_quantity(quantities[product_id])

    known = set(Product.objects.filter(id__in=product_ids).values_list("id", flat=True))
    for product_id in product_ids:
        if product_id not in known:
            raise EntityNotFound("Product", product_id)

    items = {
        item.product_id: item
        for item in StockItem.objects.select_for_update().filter(product_id__in=product_ids).order_by("product_id")
    }
    for product_id in product_ids:
        requested = int(quantities[product_id])
        available = int(items[product_id].quantity) if product_id in items else 0
        if requested > available:
            raise InsufficientStock(product_id, requested, available, sku=_sku_for(product_id))
    return items


@transaction.atomic
def decrement_many(*, quantities: Mapping[int, int], reason: str = "", reference: str = "") -> list:
    """Decrement several products at once.

    Every row is locked (in product id order) and every line validated
    before the first decrement is written.
    """

    product_ids = sorted(quantities)
    items = lock_and_validate(quantities=quantities)
    movements = [
        _apply_decrement(items[product_id], int(quantities[product_id]), reason, reference)
        for product_id in product_ids
    ]
    logger.info(
        "stock.batch_decremented",
        extra={
            "event": "stock.batch_decremented",
            "products": len(product_ids),
            "units": sum(int(q) for q in quantities.values()),
            "reference": reference,
        },
    )
    return movements


@transaction.atomic
def increment(*, product_id: int, quantity: int, reason: str = "", reference: str = "") -> StockMovement:
    """Add `quantity` units to a product's stock (restock or return)."""

    _validate_quantity(quantity)
    _ensure_product(product_id)
    item, _ = StockItem.objects.select_for_update().get_or_create(product_id=product_id, defaults={"quantity": 0})
    StockItem.objects.filter(pk=item.pk).update(quantity=F("quantity") + int(quantity), updated_at=timezone.now())
    item.refresh_from_db(fields=["quantity", "updated_at"])
    movement = StockMovement.objects.create(
        stock_item=item,
        movement_type=StockMovement.TYPE_INBOUND,
        quantity=int(quantity),
        reason=reason,
        reference=reference,
    )
    logger.info(
        "stock.incremented",
        extra={
            "event": "stock.incremented",
            "product_id": product_id,
            "quantity": int(quantity),
            "remaining": int(item.quantity),
            "reference": reference,
        },
    )
    return movement
