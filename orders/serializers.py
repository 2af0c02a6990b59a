"""DRF serializers for Orders.

Orders are read-only over the API; totals are the stored, already rounded
columns written at checkout.
"""

from common.choices import PaymentMethod, PaymentStatus
from rest_framework import serializers

from .models import Order, OrderItem, Payment


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name", "product_sku", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "method", "status", "amount", "currency", "provider_reference", "paid_at", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order with its lines and payments."""

    items = OrderItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_paid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "created_at",
            "shipping_address",
            "billing_address",
            "items",
            "subtotal",
            "tax",
            "shipping_cost",
            "total",
            "payments",
            "amount_paid",
            "is_paid",
        ]
        read_only_fields = fields


class RecordPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    status = serializers.ChoiceField(choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True, default="")
    provider_reference = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
