"""Shared enumerations and choices used across apps."""

from django.db import models


class MovementType(models.TextChoices):
    INBOUND = "in", "Inbound"
    OUTBOUND = "out", "Outbound"


class CartStatus(models.TextChoices):
    """Lifecycle statuses for shopping carts.

    OPEN is the only mutable state; CONVERTED and ABANDONED are terminal.
    """

    OPEN = "open", "Open"
    CONVERTED = "converted", "Converted"
    ABANDONED = "abandoned", "Abandoned"


class AddressKind(models.TextChoices):
    SHIPPING = "shipping", "Shipping"
    BILLING = "billing", "Billing"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Card"
    TRANSFER = "transfer", "Bank transfer"
    CASH_ON_DELIVERY = "cod", "Cash on delivery"


class PaymentStatus(models.TextChoices):
    """Outcome of a recorded payment attempt."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class Currency(models.TextChoices):
    USD = "USD", "US Dollar"
    COP = "COP", "Colombian Peso"
    EUR = "EUR", "Euro"
