"""Phone Numbers — verifies normalization and suffix matching."""

from storefront.core.phone_numbers import (
    is_valid_phone,
    matching_suffix,
    normalize_phone,
)


def test_ten_digits_get_country_code():
    assert normalize_phone("9876543210") == "919876543210"


def test_formatting_is_stripped():
    assert normalize_phone("+91 98765-43210") == "919876543210"
    assert normalize_phone("(987) 654 3210") == "919876543210"


def test_leading_zero_replaced_by_country_code():
    assert normalize_phone("09876543210") == "919876543210"


def test_other_country_code():
    assert normalize_phone("2025550123", default_country_code="1") == "12025550123"


def test_already_international_unchanged():
    assert normalize_phone("447911123456") == "447911123456"


def test_empty_phone():
    assert normalize_phone("") == ""
    assert normalize_phone(None) == ""


def test_matching_suffix_is_last_ten_digits():
    assert matching_suffix("919876543210") == "9876543210"
    assert matching_suffix("+91 98765 43210") == "9876543210"


def test_short_numbers_have_no_suffix():
    assert matching_suffix("12345") == ""
    assert matching_suffix("+91 3210") == ""
    assert matching_suffix("") == ""
    assert matching_suffix(None) == ""


def test_phone_digit_count_bounds():
    assert is_valid_phone("9876 5432")
    assert is_valid_phone("+91 98765-43210")
    assert is_valid_phone("123456789012345")
    assert not is_valid_phone("abc")
    assert not is_valid_phone("1234567")
    assert not is_valid_phone("1234567890123456")
    assert not is_valid_phone(None)
