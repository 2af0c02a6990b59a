"""Catalog services: product and category creation and product updates.

SKU and slug uniqueness is verified before insert so a clash surfaces as
DuplicateEntity with the offending field.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from common import money
from common.exceptions import DuplicateEntity, EntityNotFound, ValidationFailure
from django.db import transaction
from inventory.services import increment

from .models import Category, Product

logger = logging.getLogger("storefront.catalog")


def _require(field: str, value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationFailure(field, value, f"{field} is required")
    return value


def _parse_price(price):
    try:
        price = money.normalize(Decimal(str(price)))
    except (InvalidOperation, ValueError):
        raise ValidationFailure("price", price, "Price must be a decimal amount")
    if money.is_negative(price):
        raise ValidationFailure("price", price, "Price cannot be negative")
    return price


@transaction.atomic
def create_category(*, name: str, slug: str, parent_id: Optional[int] = None, description: str = "") -> Category:
    name = _require("name", name)
    slug = _require("slug", slug).lower()
    if Category.objects.filter(slug=slug).exists():
        raise DuplicateEntity("Category", "slug", slug)
    parent = None
    if parent_id is not None:
        try:
            parent = Category.objects.get(id=parent_id)
        except Category.DoesNotExist:
            raise EntityNotFound("Category", parent_id)
    return Category.objects.create(name=name, slug=slug, parent=parent, description=description)


@transaction.atomic
def create_product(
    *,
    sku: str,
    name: str,
    slug: str,
    price,
    category_id: Optional[int] = None,
    description: str = "",
    is_active: bool = True,
    initial_stock: int = 0,
) -> Product:
    """Create a product and, when `initial_stock` > 0, receive its first stock."""

    sku = _require("sku", sku).upper()
    name = _require("name", name)
    slug = _require("slug", slug).lower()
    price = _parse_price(price)
    if Product.objects.filter(sku__iexact=sku).exists():
        raise DuplicateEntity("Product", "sku", sku)
    if Product.objects.filter(slug=slug).exists():
        raise DuplicateEntity("Product", "slug", slug)

    category = None
    if category_id is not None:
        try:
            category = Category.objects.get(id=category_id)
        except Category.DoesNotExist:
            raise EntityNotFound("Category", category_id)

    product = Product.objects.create(
        sku=sku,
        name=name,
        slug=slug,
        price=price,
        category=category,
        description=description,
        is_active=is_active,
    )
    if initial_stock:
        increment(
            product_id=product.id,
            quantity=initial_stock,
            reason="initial stock",
            reference=f"product:{product.id}",
        )
    logger.info("product.created", extra={"event": "product.created", "product_id": product.id, "sku": sku})
    return product


@transaction.atomic
def update_product(
    *,
    product_id: int,
    name: Optional[str] = None,
    price=None,
    is_active: Optional[bool] = None,
    description: Optional[str] = None,
    category_id: Optional[int] = None,
) -> Product:
    """Change the given product fields; `None` leaves a field as it is.

    A new price only affects lines added to carts afterwards. Existing cart
    lines and orders keep the price they froze.
    """

    try:
        product = Product.objects.select_for_update().get(id=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Product", product_id)

    changed = []
    if name is not None:
        product.name = _require("name", name)
        changed.append("name")
    if price is not None:
        product.price = _parse_price(price)
        changed.append("price")
    if is_active is not None:
        product.is_active = bool(is_active)
        changed.append("is_active")
    if description is not None:
        product.description = description
        changed.append("description")
    if category_id is not None:
        try:
            product.category = Category.objects.get(id=category_id)
        except Category.DoesNotExist:
            raise EntityNotFound("Category", category_id)
        changed.append("category")

    if changed:
        product.save(update_fields=changed + ["updated_at"])
        logger.info(
            "product.updated",
            extra={"event": "product.updated", "product_id": product.id, "fields": changed},
        )
    return product


def find_product(product_id: int) -> Product:
    try:
        return Product.objects.get(id=product_id)
    except Product.DoesNotExist:
        raise EntityNotFound("Product", product_id)
