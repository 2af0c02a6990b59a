"""Selectors for inventory domain (single-location)."""

from .models import StockItem, StockMovement


def available_quantity(product_id: int) -> int:
    """Return the units on hand for a product; 0 when it has no stock row."""

    quantity = StockItem.objects.filter(product_id=product_id).values_list("quantity", flat=True).first()
    return int(quantity or 0)


def movements_for_product(product_id: int):
    return list(
        StockMovement.objects.filter(stock_item__product_id=product_id)
        .order_by("-created_at", "-id")
        .values("id", "movement_type", "quantity", "reason", "reference", "created_at")
    )
