"""Admin registrations for orders.

Orders are immutable, so everything but payments is read-only.
"""

from django.contrib import admin

from .models import Order, OrderItem, Payment


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "product_name", "product_sku", "quantity", "unit_price", "line_total")


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ("paid_at", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "user", "subtotal", "tax", "shipping_cost", "total", "created_at")
    list_filter = ("created_at",)
    search_fields = ("number", "user__email")
    date_hierarchy = "created_at"
    readonly_fields = (
        "user",
        "number",
        "shipping_address",
        "billing_address",
        "subtotal",
        "tax",
        "shipping_cost",
        "total",
        "created_at",
    )
    inlines = [OrderItemInline, PaymentInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        # Only inline payments are saved; the order row itself never changes.
        if not change:
            super().save_model(request, obj, form, change)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "method", "status", "amount", "currency", "paid_at")
    list_filter = ("method", "status", "currency")
    search_fields = ("order__number", "provider_reference")
