"""Read-only order queries."""

from common.exceptions import EntityNotFound
from django.db.models import QuerySet

from .models import Order


def _orders() -> QuerySet[Order]:
    return Order.objects.select_related("shipping_address", "billing_address").prefetch_related("items", "payments")


def find_order(order_id: int) -> Order:
    try:
        return _orders().get(id=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Order", order_id)


def find_order_by_number(number: str) -> Order:
    """Look an order up by number, ignoring case."""

    order = _orders().filter(number__iexact=(number or "").strip()).first()
    if order is None:
        raise EntityNotFound("Order", number)
    return order


def orders_for_user(user_id: int) -> QuerySet[Order]:
    return _orders().filter(user_id=user_id).order_by("-created_at", "-id")


def orders_between(start, end) -> QuerySet[Order]:
    """Orders created in the inclusive range [start, end]."""

    return _orders().filter(created_at__range=(start, end)).order_by("created_at", "id")
