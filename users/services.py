"""User account services.

Uniqueness is checked before insert so callers get a DuplicateEntity
naming the offending field, rather than a bare IntegrityError.
"""

import logging
import re
from typing import Optional

from common.exceptions import DuplicateEntity, EntityNotFound, ValidationFailure
from django.db import transaction

from .models import User

logger = logging.getLogger("storefront.users")

PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")


@transaction.atomic
def register_user(*, username: str, email: str, password: str, **extra) -> User:
    """Create an active store account."""

    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username:
        raise ValidationFailure("username", username, "Username is required")
    if not email:
        raise ValidationFailure("email", email, "Email is required")
    if User.objects.filter(email__iexact=email).exists():
        raise DuplicateEntity("User", "email", email)
    if User.objects.filter(username__iexact=username).exists():
        raise DuplicateEntity("User", "username", username)

    user = User.objects.create_user(username=username, email=email, password=password, **extra)
    logger.info("user.registered", extra={"event": "user.registered", "user_id": user.id})
    return user


def find_registered_user(user_id: int) -> User:
    """Return the user for `user_id`, raising EntityNotFound when missing."""

    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise EntityNotFound("User", user_id)


def find_user_by_email(email: str) -> User:
    """Return the user with `email`, ignoring case and surrounding whitespace."""

    user = User.objects.filter(email__iexact=(email or "").strip()).first()
    if user is None:
        raise EntityNotFound("User", {"email": email})
    return user


@transaction.atomic
def update_profile(
    *,
    user_id: int,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    """Update contact details; `None` leaves a field unchanged.

    Names cannot be blanked. A blank phone clears it; otherwise it must be
    in E.164 format.
    """

    user = find_registered_user(user_id)
    changed = []
    for field, value in (("first_name", first_name), ("last_name", last_name)):
        if value is None:
            continue
        value = value.strip()
        if not value:
            raise ValidationFailure(field, value, f"{field} cannot be blank")
        setattr(user, field, value)
        changed.append(field)
    if phone is not None:
        phone = phone.strip()
        if phone and not PHONE_RE.match(phone):
            raise ValidationFailure("phone", phone, "Use E.164 format (e.g., +14155552671)")
        user.phone = phone
        changed.append("phone")

    if changed:
        user.save(update_fields=changed)
        logger.info("user.profile_updated", extra={"event": "user.profile_updated", "user_id": user.id})
    return user
