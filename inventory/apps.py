"""Django app configuration for inventory."""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Single-location stock ledger."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
