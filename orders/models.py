"""Orders app models.

An order is a frozen snapshot of a converted cart. After creation it never
changes; payments are appended as separate rows and paid-ness is derived
from them.
"""

from decimal import Decimal

from common import money
from common.choices import Currency, PaymentMethod, PaymentStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Order(models.Model):
    """Purchase order capturing a snapshot of a user's checkout.

    Totals are denormalized; `total` is always subtotal + tax + shipping,
    each term already rounded to cents.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="orders", on_delete=models.PROTECT)
    number = models.CharField(max_length=32, unique=True)
    shipping_address = models.ForeignKey(
        "customer.Address", related_name="shipped_orders", on_delete=models.PROTECT
    )
    billing_address = models.ForeignKey("customer.Address", related_name="billed_orders", on_delete=models.PROTECT)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                name="order_amounts_non_negative",
                condition=models.Q(subtotal__gte=0, tax__gte=0, shipping_cost__gte=0, total__gte=0),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order {self.number} user={self.user_id} total={self.total}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"Order {self.number} is immutable once created")
        super().save(*args, **kwargs)

    @property
    def amount_paid(self) -> Decimal:
        return money.sum_amounts(
            p.amount for p in self.payments.all() if p.status == PaymentStatus.COMPLETED
        )

    @property
    def is_paid(self) -> bool:
        return self.amount_paid >= money.normalize(self.total)


class OrderItem(models.Model):
    """Line item within an order.

    Snapshots product name, SKU and unit price for auditability.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)
    product_name = models.CharField(max_length=200)
    product_sku = models.CharField(max_length=64)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "product"], name="orderitem_order_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(unit_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} product={self.product_id} qty={self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"OrderItem {self.pk} of order {self.order_id} is immutable once created")
        super().save(*args, **kwargs)


class Payment(TimeStampedModel):
    """Recorded outcome of a payment attempt against an order."""

    METHOD_CHOICES = PaymentMethod.choices
    STATUS_CHOICES = PaymentStatus.choices

    order = models.ForeignKey(Order, related_name="payments", on_delete=models.CASCADE)
    method = models.CharField(max_length=16, choices=METHOD_CHOICES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=PaymentStatus.PENDING, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.USD)
    provider_reference = models.CharField(max_length=120, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(name="payment_amount_positive", condition=models.Q(amount__gt=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Payment#{self.id} order={self.order_id} {self.status} {self.amount} {self.currency}"
