"""Phone Normalization — canonical digit strings for storage and webhook matching.

Invariants:
    - normalize_phone strips every non-digit
    - A leading trunk 0 is replaced by the default country code
    - A bare 10-digit local number gets the default country code prepended
    - A customer phone holds 8 to 15 digits (E.164 allows at most 15), so the
      normalized form always fits the 20-character column
    - matching_suffix returns the last 10 digits (subscriber number without country
      code), or "" when fewer than 10 digits are present

Design Decisions:
    - Default country code is a parameter, not a constant (ADR: explicit config)
    - Suffix matching is deliberately loose: it can match several orders that share
      a number, so the reconciler bounds it to the N most recent candidates
"""

import re

LOCAL_NUMBER_LENGTH = 10
MIN_PHONE_DIGITS = 8
MAX_PHONE_DIGITS = 15

_NON_DIGITS = re.compile(r"\D")


def digits_only(phone: str | None) -> str:
    return _NON_DIGITS.sub("", phone or "")


def is_valid_phone(phone: str | None) -> bool:
    """True when the number carries a plausible count of digits."""
    return MIN_PHONE_DIGITS <= len(digits_only(phone)) <= MAX_PHONE_DIGITS


def normalize_phone(phone: str, default_country_code: str = "91") -> str:
    """Canonical digits-only form, e.g. '098765-43210' -> '919876543210'."""
    cleaned = digits_only(phone)
    if cleaned.startswith("0"):
        cleaned = default_country_code + cleaned[1:]
    if len(cleaned) == LOCAL_NUMBER_LENGTH:
        cleaned = default_country_code + cleaned
    return cleaned


def matching_suffix(phone: str) -> str:
    """Last 10 digits used for fuzzy order matching; "" for shorter numbers."""
    digits = digits_only(phone)
    if len(digits) < LOCAL_NUMBER_LENGTH:
        return ""
    return digits[-LOCAL_NUMBER_LENGTH:]
