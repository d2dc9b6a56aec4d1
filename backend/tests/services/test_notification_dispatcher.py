"""Notification Dispatcher — verifies link delivery over WhatsApp and email.

Invariants:
    - Sentinel credentials simulate the send: preview returned, attempts counted,
      delivery_status untouched
    - A real send stores the provider message id and moves that channel's status
      to sent: delivery_status for WhatsApp, email_delivery_status for email
    - A provider failure stores last_delivery_error and raises MessagingProviderError
    - deliver_order sends email always, WhatsApp only on opt-in
"""

from dataclasses import replace
from uuid import uuid4

import pytest
from sqlalchemy import update

from storefront.core.domain_types import DeliveryChannel
from storefront.core.errors import (
    ConflictError,
    MessagingProviderError,
    ResourceNotFoundError,
    ValidationError,
)
from storefront.infrastructure.email_client import ResendEmailClient
from storefront.infrastructure.razorpay_client import RazorpayClient
from storefront.infrastructure.whatsapp_client import WhatsAppClient
from storefront.models.order import Order
from storefront.services.notification_dispatcher import (
    NotificationDispatcher,
    ProductDownload,
)
from storefront.services.order_ledger import OrderLedger

from tests.services.mock_providers import (
    provider_error,
    provider_timeout,
    resend_ok,
    whatsapp_ok,
)

PRODUCTS = [ProductDownload("Study Guide", "tok-guide")]


async def _create_order(db, config, cart_lines, optin=False, paid=True):
    gateway = RazorpayClient("k", "s", test_mode=True)
    created = await OrderLedger(db, config, gateway).create_order(
        cart_lines, "buyer@example.com", "98765 43210", "Asha", whatsapp_optin=optin,
    )
    if paid:
        await db.execute(
            update(Order).where(Order.id == created.order_id).values(status="paid"),
        )
        await db.commit()
    return created


def _dispatcher(db, config, whatsapp_transport=None, email_transport=None):
    return NotificationDispatcher(
        db, config,
        whatsapp_client=WhatsAppClient(
            config.whatsapp_access_token, config.whatsapp_phone_number_id,
            transport=whatsapp_transport,
        ),
        email_client=ResendEmailClient(
            config.resend_api_key, config.email_from, transport=email_transport,
        ),
    )


async def test_dry_run_whatsapp_returns_preview(
    test_db, store_config, cart_lines, read_db,
):
    created = await _create_order(test_db, store_config, cart_lines)
    transport = whatsapp_ok()

    result = await _dispatcher(test_db, store_config, transport).send_whatsapp(
        created.order_id, "98765 43210", "Asha", PRODUCTS,
    )

    assert result.success and result.simulated
    assert result.preview["status"] == "simulated"
    assert result.preview["to"] == "919876543210"
    assert result.preview["download_links"] == [{
        "name": "Study Guide",
        "url": "https://shop.example.com/api/v1/downloads?token=tok-guide",
    }]
    assert created.order_number in result.preview["body"]
    assert transport.requests == []
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.delivery_attempts == 1
        assert order.delivery_status == "pending"


async def test_dry_run_email_preview_has_subject(test_db, store_config, cart_lines):
    created = await _create_order(test_db, store_config, cart_lines)
    result = await _dispatcher(test_db, store_config).send_email(
        created.order_id, "buyer@example.com", "Asha", PRODUCTS,
    )
    assert result.simulated
    assert result.preview["subject"] == "Your Download is Ready! 🎉"
    assert result.preview["to"] == "buyer@example.com"


async def test_disabled_whatsapp_records_nothing(
    test_db, store_config, cart_lines, read_db,
):
    config = replace(store_config, whatsapp_enabled=False)
    created = await _create_order(test_db, config, cart_lines)

    result = await _dispatcher(test_db, config).send_whatsapp(
        created.order_id, "9876543210", None, PRODUCTS,
    )

    assert result.success is False
    assert result.disabled is True
    assert result.preview["status"] == "disabled"
    async with read_db() as db:
        assert (await db.get(Order, created.order_id)).delivery_attempts == 0


async def test_live_whatsapp_send_marks_sent(
    test_db, live_config, cart_lines, read_db,
):
    created = await _create_order(test_db, live_config, cart_lines)
    transport = whatsapp_ok("wamid.ABC")

    result = await _dispatcher(test_db, live_config, transport).send_whatsapp(
        created.order_id, "9876543210", "Asha", PRODUCTS,
    )

    assert result.success and not result.simulated
    assert result.message_id == "wamid.ABC"
    sent = transport.last_json()
    assert sent["to"] == "919876543210"
    assert "tok-guide" in sent["text"]["body"]
    assert transport.requests[0].headers["authorization"] == "Bearer EAAG-live-token"
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.whatsapp_message_id == "wamid.ABC"
        assert order.delivery_status == "sent"
        assert order.email_delivery_status == "pending"
        assert order.delivery_attempts == 1
        assert order.last_delivery_error is None


async def test_live_email_send_stores_message_id(
    test_db, live_config, cart_lines, read_db,
):
    created = await _create_order(test_db, live_config, cart_lines)
    transport = resend_ok("email-xyz")

    result = await _dispatcher(test_db, live_config, email_transport=transport).send_email(
        created.order_id, "buyer@example.com", "<b>Asha</b>", PRODUCTS,
    )

    assert result.message_id == "email-xyz"
    payload = transport.last_json()
    assert payload["to"] == ["buyer@example.com"]
    assert "&lt;b&gt;Asha&lt;/b&gt;" in payload["html"]
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.email_message_id == "email-xyz"
        assert order.email_delivery_status == "sent"
        assert order.delivery_status == "pending"


async def test_provider_error_recorded_and_raised(
    test_db, live_config, cart_lines, read_db,
):
    created = await _create_order(test_db, live_config, cart_lines)
    transport = provider_error(400, "Recipient phone number not in allowed list")

    with pytest.raises(MessagingProviderError) as exc:
        await _dispatcher(test_db, live_config, transport).send_whatsapp(
            created.order_id, "9876543210", "Asha", PRODUCTS,
        )

    assert exc.value.http_status == 502
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.delivery_attempts == 1
        assert order.delivery_status == "pending"
        assert "not in allowed list" in order.last_delivery_error


async def test_provider_timeout_raises(test_db, live_config, cart_lines):
    created = await _create_order(test_db, live_config, cart_lines)
    with pytest.raises(MessagingProviderError):
        await _dispatcher(
            test_db, live_config, email_transport=provider_timeout(),
        ).send_email(created.order_id, "buyer@example.com", None, PRODUCTS)


async def test_unconfigured_whatsapp_fails(test_db, live_config, cart_lines, read_db):
    config = replace(live_config, whatsapp_phone_number_id="")
    created = await _create_order(test_db, config, cart_lines)
    with pytest.raises(MessagingProviderError):
        await _dispatcher(test_db, config).send_whatsapp(
            created.order_id, "9876543210", None, PRODUCTS,
        )
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.last_delivery_error == "whatsapp: WhatsApp is not configured"


@pytest.mark.parametrize("phone,downloads", [("", PRODUCTS), ("9876543210", [])])
async def test_send_whatsapp_validates_input(
    test_db, store_config, cart_lines, phone, downloads,
):
    created = await _create_order(test_db, store_config, cart_lines)
    with pytest.raises(ValidationError):
        await _dispatcher(test_db, store_config).send_whatsapp(
            created.order_id, phone, None, downloads,
        )


async def test_send_for_unknown_order(test_db, store_config):
    with pytest.raises(ResourceNotFoundError):
        await _dispatcher(test_db, store_config).send_email(
            uuid4(), "buyer@example.com", None, PRODUCTS,
        )


async def test_deliver_order_email_only_without_optin(
    test_db, live_config, cart_lines,
):
    created = await _create_order(test_db, live_config, cart_lines, optin=False)
    whatsapp, email = whatsapp_ok(), resend_ok()

    results = await _dispatcher(test_db, live_config, whatsapp, email).deliver_order(
        created.order_id,
    )

    assert list(results) == [DeliveryChannel.EMAIL.value]
    assert results["email"].success
    assert whatsapp.requests == []
    html = email.last_json()["html"]
    assert "Study Guide" in html and "Template Pack" in html


async def test_deliver_order_reports_each_channel(
    test_db, live_config, cart_lines, read_db,
):
    created = await _create_order(test_db, live_config, cart_lines, optin=True)

    results = await _dispatcher(
        test_db, live_config, provider_error(500), resend_ok(),
    ).deliver_order(created.order_id)

    assert results["email"].success is True
    assert results["whatsapp"].success is False
    assert results["whatsapp"].error
    async with read_db() as db:
        order = await db.get(Order, created.order_id)
        assert order.delivery_attempts == 2
        assert order.email_delivery_status == "sent"
        assert order.delivery_status == "pending"


async def test_deliver_order_requires_paid(test_db, store_config, cart_lines):
    created = await _create_order(test_db, store_config, cart_lines, paid=False)
    with pytest.raises(ConflictError):
        await _dispatcher(test_db, store_config).deliver_order(created.order_id)
