"""Order pricing rules.

Rates and thresholds come from the ``STORE_*`` settings. Each function
returns an amount already rounded to cents, so an order total is the sum of
independently rounded terms.
"""

from decimal import Decimal
from typing import Iterable, Tuple

from common import money
from django.conf import settings


def line_total(unit_price, quantity: int) -> Decimal:
    return money.multiply(unit_price, quantity)


def subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Sum of `unit_price x quantity` for `(unit_price, quantity)` pairs."""

    return money.sum_amounts(line_total(price, qty) for price, qty in lines)


def tax_for(amount) -> Decimal:
    return money.percentage_of(amount, settings.STORE_TAX_RATE_PERCENT)


def shipping_for(amount) -> Decimal:
    """Free at or above the threshold, otherwise a base fee plus a share of the subtotal."""

    amount = money.normalize(amount)
    if amount >= money.money(settings.STORE_FREE_SHIPPING_THRESHOLD):
        return money.ZERO
    return money.add(
        money.money(settings.STORE_BASE_SHIPPING_COST),
        money.percentage_of(amount, settings.STORE_SHIPPING_SUBTOTAL_PERCENT),
    )


def order_totals(amount) -> dict:
    """Return subtotal, tax, shipping_cost and total for a subtotal."""

    amount = money.normalize(amount)
    tax = tax_for(amount)
    shipping_cost = shipping_for(amount)
    return {
        "subtotal": amount,
        "tax": tax,
        "shipping_cost": shipping_cost,
        "total": money.sum_amounts([amount, tax, shipping_cost]),
    }
