"""Checkout Rules — pure validation and pricing for order creation.

Invariants:
    - validate_checkout raises before the shell performs any write
    - Quantity is fixed at 1 per line; total is the plain sum of unit prices
    - Cart prices must match the catalog snapshot, so the persisted total is both
      the sum of what the customer saw and what the store charges
    - format_order_number is deterministic given (sequence, date)
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from storefront.core.domain_types import MinorUnits
from storefront.core.errors import ValidationError
from storefront.core.phone_numbers import MAX_PHONE_DIGITS, MIN_PHONE_DIGITS, is_valid_phone

ORDER_NUMBER_PREFIX = "ORD"


@dataclass(frozen=True)
class CartLine:
    """One cart entry as submitted by the client (price already in minor units)."""
    product_id: UUID
    product_name: str
    price_minor: int


@dataclass(frozen=True)
class CatalogEntry:
    """Catalog view of a product at checkout time."""
    product_id: UUID
    name: str
    price_minor: int
    is_active: bool


def validate_checkout(
    lines: list[CartLine], customer_email: str | None, customer_phone: str | None,
) -> None:
    """Reject empty carts, missing contact details and implausible phone numbers."""
    if not lines:
        raise ValidationError("No items in cart", "items")
    if not customer_email or not customer_email.strip():
        raise ValidationError("Customer email is required", "customer_email")
    if "@" not in customer_email:
        raise ValidationError("Customer email is invalid", "customer_email")
    if not customer_phone or not customer_phone.strip():
        raise ValidationError("Customer phone is required", "customer_phone")
    if not is_valid_phone(customer_phone):
        raise ValidationError(
            f"Customer phone must contain {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits",
            "customer_phone",
        )
    for index, line in enumerate(lines):
        if line.price_minor < 0:
            raise ValidationError(
                f"Item {index} has a negative price", f"items.{index}.product.price",
            )


def check_against_catalog(
    lines: list[CartLine], catalog: dict[UUID, CatalogEntry],
) -> list[UUID]:
    """Return product ids missing from the catalog; raise on stale prices.

    Inactive products are reported as missing — they cannot be bought.
    """
    missing = []
    for index, line in enumerate(lines):
        entry = catalog.get(line.product_id)
        if entry is None or not entry.is_active:
            missing.append(line.product_id)
            continue
        if entry.price_minor != line.price_minor:
            raise ValidationError(
                f"Price of '{entry.name}' has changed, please refresh your cart",
                f"items.{index}.product.price",
            )
    return missing


def compute_total(lines: list[CartLine]) -> MinorUnits:
    """Sum of unit prices — quantity is always 1."""
    return MinorUnits(sum(line.price_minor for line in lines))


def format_order_number(sequence: int, issued_on: date) -> str:
    """ORD-20261018-000042 — unique because `sequence` comes from the database."""
    return f"{ORDER_NUMBER_PREFIX}-{issued_on:%Y%m%d}-{sequence:06d}"
