"""Customer domain services for mutations and side-effects.

Keep business rules here and keep views thin.
"""

import logging
from typing import Optional

from common.choices import AddressKind
from common.exceptions import EntityNotFound, ValidationFailure
from django.db import transaction
from django.db.models import ProtectedError
from users.services import find_registered_user

from .models import Address

logger = logging.getLogger("storefront.customer")

REQUIRED_FIELDS = ("addr1", "city", "country_code")
OPTIONAL_FIELDS = ("name", "addr2", "state", "postal_code")


def _clean(values: dict) -> dict:
    """Strip text fields, uppercase the country code and validate what is present."""

    cleaned = {field: (value or "").strip() for field, value in values.items() if field != "kind"}
    if "country_code" in cleaned:
        cleaned["country_code"] = cleaned["country_code"].upper()
    for field in REQUIRED_FIELDS:
        if field in cleaned and not cleaned[field]:
            raise ValidationFailure(field, cleaned[field], f"{field} is required")
    code = cleaned.get("country_code")
    if code is not None and (len(code) != 2 or not code.isalpha()):
        raise ValidationFailure("country_code", values["country_code"], "Use ISO 3166-1 alpha-2 country code")
    if "kind" in values:
        if values["kind"] not in AddressKind.values:
            raise ValidationFailure("kind", values["kind"], "Unknown address kind")
        cleaned["kind"] = values["kind"]
    return cleaned


def _unset_default(user_id: int) -> None:
    Address.objects.filter(user_id=user_id, is_default=True).update(is_default=False)


@transaction.atomic
def add_address(
    *,
    user_id: int,
    addr1: str,
    city: str,
    country_code: str = "US",
    kind: str = AddressKind.SHIPPING,
    name: str = "",
    addr2: str = "",
    state: str = "",
    postal_code: str = "",
    is_default: bool = False,
) -> Address:
    """Create an address for a registered user.

    Country codes are stored uppercase; unknown kinds and missing lines are
    rejected with ValidationFailure. A user's first address becomes the
    default, and `is_default=True` moves the default to the new address.
    """

    user = find_registered_user(user_id)
    values = _clean(
        {
            "addr1": addr1,
            "city": city,
            "country_code": country_code,
            "kind": kind,
            "name": name,
            "addr2": addr2,
            "state": state,
            "postal_code": postal_code,
        }
    )
    first = not Address.objects.filter(user=user).exists()
    if is_default and not first:
        _unset_default(user.id)

    address = Address.objects.create(user=user, is_default=first or bool(is_default), **values)
    logger.info("address.created", extra={"event": "address.created", "user_id": user.id, "address_id": address.id})
    return address


def find_address_for_user(*, address_id: Optional[int], user_id: int, field: str) -> Address:
    """Return the address when it exists and belongs to `user_id`.

    A missing address raises EntityNotFound; one owned by someone else is a
    ValidationFailure on `field`.
    """

    try:
        address = Address.objects.get(id=address_id)
    except (Address.DoesNotExist, ValueError, TypeError):
        raise EntityNotFound("Address", address_id)
    if address.user_id != user_id:
        raise ValidationFailure(field, address_id, "Address does not belong to this user")
    return address


@transaction.atomic
def update_address(*, address_id: int, user_id: int, **changes) -> Address:
    """Update the given fields of one of the user's addresses.

    Accepts the text fields of `add_address` plus `kind`; `None` values are
    ignored. Use `set_default_address` to move the default.
    """

    allowed = set(REQUIRED_FIELDS) | set(OPTIONAL_FIELDS) | {"kind"}
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationFailure(unknown[0], changes[unknown[0]], "Field cannot be updated")

    address = find_address_for_user(address_id=address_id, user_id=user_id, field="address_id")
    values = _clean({field: value for field, value in changes.items() if value is not None})
    if values:
        for field, value in values.items():
            setattr(address, field, value)
        address.save(update_fields=sorted(values) + ["updated_at"])
        logger.info(
            "address.updated",
            extra={"event": "address.updated", "user_id": user_id, "address_id": address.id, "fields": sorted(values)},
        )
    return address


@transaction.atomic
def set_default_address(*, address_id: int, user_id: int) -> Address:
    user = find_registered_user(user_id)
    address = find_address_for_user(address_id=address_id, user_id=user.id, field="address_id")
    if not address.is_default:
        _unset_default(user.id)
        address.is_default = True
        address.save(update_fields=["is_default", "updated_at"])
    logger.info(
        "address.default_changed",
        extra={"event": "address.default_changed", "user_id": user.id, "address_id": address.id},
    )
    return address


@transaction.atomic
def delete_address(*, address_id: int, user_id: int) -> None:
    """Delete one of the user's addresses.

    When the default is removed the user's oldest remaining address becomes
    the default. Addresses referenced by an order cannot be deleted.
    """

    user = find_registered_user(user_id)
    address = find_address_for_user(address_id=address_id, user_id=user.id, field="address_id")
    was_default = address.is_default
    try:
        address.delete()
    except ProtectedError:
        raise ValidationFailure("address_id", address_id, "Address is used by an order")

    if was_default:
        successor = Address.objects.filter(user=user).order_by("created_at", "id").first()
        if successor is not None:
            successor.is_default = True
            successor.save(update_fields=["is_default", "updated_at"])
    logger.info(
        "address.deleted",
        extra={"event": "address.deleted", "user_id": user.id, "address_id": address_id},
    )
