"""User model for store accounts.

Registered users own carts, addresses and orders. Guests have no row here;
their carts carry a session id instead.
"""

from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models


class User(AbstractUser):
    """Store customer with a unique, normalized email."""

    email = models.EmailField(unique=True)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +14155552671)")],
        help_text="Primary contact number for the account in E.164 format",
    )

    def save(self, *args, **kwargs):
        """Normalize email and phone before persisting.

        Emails are stored lowercase without surrounding whitespace so the
        uniqueness checks in `users.services` are reliable.
        """
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)

    @property
    def is_registered(self) -> bool:
        return self.pk is not None and self.is_active
