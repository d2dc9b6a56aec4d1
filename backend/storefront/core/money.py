"""Money — decimal at the boundary, integer minor units inside.

Invariants:
    - Amounts are stored and summed as int minor units (no float arithmetic)
    - Conversion rounds half-up to the nearest minor unit
"""

from decimal import Decimal, ROUND_HALF_UP

from storefront.core.domain_types import MinorUnits

MINOR_PER_MAJOR = 100


def to_minor_units(amount: Decimal | int | str) -> MinorUnits:
    """Decimal('199.50') -> 19950."""
    value = Decimal(str(amount)) * MINOR_PER_MAJOR
    return MinorUnits(int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def from_minor_units(amount: int) -> Decimal:
    """19950 -> Decimal('199.50')."""
    return (Decimal(amount) / MINOR_PER_MAJOR).quantize(Decimal("0.01"))
