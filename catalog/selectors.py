"""Selectors for the catalog domain.

Read-only query helpers shared by services, admin and tests. Selectors
return querysets or lightweight data structures and avoid side effects.
"""

from typing import Dict, List

from common.exceptions import EntityNotFound
from django.db.models import QuerySet

from .models import Category, Product


def find_product_by_sku(sku: str) -> Product:
    """Return the product with `sku`, ignoring case."""

    product = Product.objects.filter(sku__iexact=(sku or "").strip()).first()
    if product is None:
        raise EntityNotFound("Product", {"sku": sku})
    return product


def search_products(name: str, *, active_only: bool = True) -> QuerySet[Product]:
    """Products whose name contains `name` (case-insensitive), ordered by name."""

    qs = Product.objects.filter(name__icontains=(name or "").strip())
    if active_only:
        qs = qs.filter(is_active=True)
    return qs.order_by("name", "id")


def find_category(category_id: int) -> Category:
    try:
        return Category.objects.get(id=category_id)
    except (Category.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Category", category_id)


def list_subcategories(parent_id: int) -> QuerySet[Category]:
    """Direct children of a category; raises EntityNotFound for an unknown parent."""

    parent = find_category(parent_id)
    return Category.objects.filter(parent=parent).order_by("name", "id")


def category_tree(category_id: int) -> Dict:
    """Return the category and all its descendants as nested dicts.

    Categories are loaded in one query and assembled in memory.
    """

    root = find_category(category_id)
    children: Dict[int, List[Category]] = {}
    for category in Category.objects.exclude(parent__isnull=True).order_by("name", "id"):
        children.setdefault(category.parent_id, []).append(category)

    def build(category: Category, seen: frozenset) -> Dict:
        return {
            "id": category.id,
            "name": category.name,
            "slug": category.slug,
            "children": [
                build(child, seen | {child.id}) for child in children.get(category.id, []) if child.id not in seen
            ],
        }

    return build(root, frozenset({root.id}))
