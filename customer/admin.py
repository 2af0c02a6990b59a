from django.contrib import admin

from .models import Address


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "kind", "name", "city", "state", "postal_code", "country_code", "is_default")
    list_filter = ("kind", "country_code", "is_default")
    search_fields = ("name", "addr1", "city", "postal_code", "user__email", "user__username")
    ordering = ("-updated_at", "id")
