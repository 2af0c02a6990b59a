"""Admin registrations for inventory app.

Quantities are read-only here; stock only moves through the ledger services.
"""

from django.contrib import admin

from .models import StockItem, StockMovement


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    can_delete = False
    readonly_fields = ("movement_type", "quantity", "reason", "reference", "created_at")


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "quantity", "updated_at")
    search_fields = ("product__sku", "product__name")
    readonly_fields = ("quantity",)
    inlines = [StockMovementInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "stock_item", "movement_type", "quantity", "reason", "reference", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("stock_item__product__sku", "reference")
