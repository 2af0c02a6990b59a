"""Customer domain models.

Postal addresses owned by a user. Checkout resolves the shipping and
billing address ids through this model and checks ownership.
"""

from common.choices import AddressKind
from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Address(TimeStampedModel):
    """Normalized postal address tied to a user.

    `country_code` is stored as ISO 3166-1 alpha-2 uppercase. At most one
    address per user is the default.
    """

    KIND_SHIPPING = AddressKind.SHIPPING
    KIND_BILLING = AddressKind.BILLING
    KIND_CHOICES = AddressKind.choices

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="addresses")
    kind = models.CharField(max_length=16, choices=KIND_CHOICES, default=KIND_SHIPPING)
    name = models.CharField(max_length=120, blank=True, help_text="Optional recipient or label for the address")
    addr1 = models.CharField(max_length=120)
    addr2 = models.CharField(max_length=120, blank=True)
    city = models.CharField(max_length=80)
    state = models.CharField(max_length=40, blank=True)
    postal_code = models.CharField(
        max_length=12,
        blank=True,
        validators=[RegexValidator(r"^[A-Za-z0-9\- ]{0,12}$", message="Use standard alphanumeric postal/zip code")],
    )
    country_code = models.CharField(
        max_length=2,
        default="US",
        validators=[RegexValidator(r"^[A-Z]{2}$", message="Use ISO 3166-1 alpha-2 country code (e.g., US)")],
    )
    is_default = models.BooleanField(default=False)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["user", "kind"], name="address_user_kind_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user"], condition=models.Q(is_default=True), name="address_one_default_per_user"
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        parts = [self.addr1, self.addr2, self.city, self.state, self.postal_code, self.country_code]
        return f"{self.name or ''} - " + ", ".join([p for p in parts if p])
