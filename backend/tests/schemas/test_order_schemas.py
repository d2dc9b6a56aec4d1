"""Order schemas — request validation before any write.

Invariants:
    - Contact fields are stripped; blank values rejected
    - Phone numbers carry 8-15 digits
    - Prices carry at most two decimal places and are never negative
    - Cart holds 1..100 items
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from storefront.schemas.admin import PurgeRequest
from storefront.schemas.notification import (
    EmailNotificationRequest,
    WhatsAppNotificationRequest,
)
from storefront.schemas.order import CreateOrderRequest, VerifyPaymentRequest


def _item(price="199.00"):
    return {"product": {"id": str(uuid4()), "name": "Guide", "price": price}}


def _order(**overrides):
    body = {
        "items": [_item()],
        "customer_email": "  buyer@example.com ",
        "customer_phone": " 9876543210 ",
    }
    body.update(overrides)
    return body


def test_contact_fields_are_stripped():
    req = CreateOrderRequest(**_order())
    assert req.customer_email == "buyer@example.com"
    assert req.customer_phone == "9876543210"
    assert req.whatsapp_optin is False
    assert req.items[0].product.price == Decimal("199.00")


@pytest.mark.parametrize("overrides", [
    {"customer_email": "   "},
    {"customer_email": "buyer.example.com"},
    {"customer_phone": ""},
    {"customer_phone": "abc"},
    {"customer_phone": "12345"},
    {"customer_phone": "9" * 21},
    {"items": []},
    {"items": [_item()] * 101},
    {"items": [_item("-1.00")]},
    {"items": [_item("1.005")]},
])
def test_invalid_orders_rejected(overrides):
    with pytest.raises(ValidationError):
        CreateOrderRequest(**_order(**overrides))


def test_verify_signature_optional():
    req = VerifyPaymentRequest(
        order_id=uuid4(), payment_id="pay_1", gateway_order_id="order_1",
    )
    assert req.signature is None


@pytest.mark.parametrize("phone", ["", "no digits", "12"])
def test_whatsapp_notification_needs_plausible_phone(phone):
    with pytest.raises(ValidationError):
        WhatsAppNotificationRequest(
            order_id=uuid4(), customer_phone=phone,
            products=[{"name": "Guide", "token": "t"}],
        )


def test_notification_requests_need_products():
    with pytest.raises(ValidationError):
        WhatsAppNotificationRequest(
            order_id=uuid4(), customer_phone="9876543210", products=[],
        )
    with pytest.raises(ValidationError):
        EmailNotificationRequest(
            order_id=uuid4(), customer_email="nope",
            products=[{"name": "Guide", "token": "t"}],
        )


@pytest.mark.parametrize("count,ok", [(1, True), (1000, True), (0, False), (1001, False)])
def test_purge_bounds(count, ok):
    if ok:
        assert PurgeRequest(record_count=count).record_count == count
    else:
        with pytest.raises(ValidationError):
            PurgeRequest(record_count=count)
