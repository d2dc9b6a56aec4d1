"""Delivery Reconciler — verifies webhook callbacks fold monotonically into orders.

Invariants:
    - sent -> delivered -> (late) sent leaves the order delivered
    - failed is terminal: later read/delivered callbacks are skipped
    - Message-id correlation wins; phone-suffix fallback covers missing ids
    - Handshake echoes the challenge only for the configured token
    - Email callbacks require a valid Svix signature
    - Email callbacks move email_delivery_status only; WhatsApp status is untouched
    - One bad status event in a delivery never blocks the events after it
"""

import json
from dataclasses import replace

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from storefront.core.errors import AuthorizationError, WebhookSignatureError
from storefront.core.signatures import compute_svix_signature
from storefront.infrastructure.razorpay_client import RazorpayClient
from storefront.models.order import Order
from storefront.services.delivery_reconciler import DeliveryReconciler
from storefront.services.order_ledger import OrderLedger

NOW = 1_760_000_000
SECRET = "whsec_c2VjcmV0LWtleS1mb3ItdGVzdHM="


async def _paid_order(db, config, cart_lines, phone="9876543210", **values):
    created = await OrderLedger(
        db, config, RazorpayClient("k", "s", test_mode=True),
    ).create_order(cart_lines, "buyer@example.com", phone)
    await db.execute(
        update(Order).where(Order.id == created.order_id)
        .values(status="paid", **values),
    )
    await db.commit()
    return created.order_id


def _whatsapp_status(status, message_id="wamid.ONE", recipient="919876543210", errors=None):
    event = {"id": message_id, "status": status, "recipient_id": recipient,
             "timestamp": "1700000000"}
    if errors:
        event["errors"] = errors
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"field": "messages", "value": {"statuses": [event]}}]}],
    }


async def _delivery(read_db, order_id):
    async with read_db() as db:
        order = await db.get(Order, order_id)
        return order.delivery_status, order.last_delivery_error


async def _email_delivery(read_db, order_id):
    async with read_db() as db:
        order = await db.get(Order, order_id)
        return order.email_delivery_status, order.last_delivery_error


async def test_status_sequence_never_regresses(
    test_db, store_config, cart_lines, read_db,
):
    order_id = await _paid_order(
        test_db, store_config, cart_lines, whatsapp_message_id="wamid.ONE",
    )
    reconciler = DeliveryReconciler(test_db, store_config)

    await reconciler.handle_whatsapp(_whatsapp_status("sent"))
    await reconciler.handle_whatsapp(_whatsapp_status("delivered"))
    summary = await reconciler.handle_whatsapp(_whatsapp_status("sent"))

    assert summary.applied == 0 and summary.skipped == 1
    assert (await _delivery(read_db, order_id))[0] == "delivered"


async def test_failed_is_terminal(test_db, store_config, cart_lines, read_db):
    order_id = await _paid_order(
        test_db, store_config, cart_lines, whatsapp_message_id="wamid.ONE",
    )
    reconciler = DeliveryReconciler(test_db, store_config)

    await reconciler.handle_whatsapp(_whatsapp_status(
        "failed", errors=[{"code": 131026, "title": "Message undeliverable"}],
    ))
    await reconciler.handle_whatsapp(_whatsapp_status("read"))

    status, error = await _delivery(read_db, order_id)
    assert status == "failed"
    assert error == "Message undeliverable"


async def test_message_id_match_beats_phone(test_db, store_config, cart_lines, read_db):
    tagged = await _paid_order(
        test_db, store_config, cart_lines, whatsapp_message_id="wamid.ONE",
    )
    other = await _paid_order(test_db, store_config, cart_lines)

    await DeliveryReconciler(test_db, store_config).handle_whatsapp(
        _whatsapp_status("delivered"),
    )

    assert (await _delivery(read_db, tagged))[0] == "delivered"
    assert (await _delivery(read_db, other))[0] == "pending"


async def test_phone_suffix_fallback(test_db, store_config, cart_lines, read_db):
    order_id = await _paid_order(test_db, store_config, cart_lines, phone="+91 98765-43210")

    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(
        _whatsapp_status("sent", message_id="wamid.UNKNOWN"),
    )

    assert summary.applied == 1
    assert (await _delivery(read_db, order_id))[0] == "sent"


async def test_pending_orders_are_not_candidates(
    test_db, store_config, cart_lines, read_db,
):
    created = await OrderLedger(
        test_db, store_config, RazorpayClient("k", "s", test_mode=True),
    ).create_order(cart_lines, "buyer@example.com", "9876543210")

    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(
        _whatsapp_status("delivered", message_id=None),
    )

    assert summary.unmatched == 1
    assert (await _delivery(read_db, created.order_id))[0] == "pending"


async def test_unknown_status_and_messages_are_acknowledged(test_db, store_config):
    body = _whatsapp_status("deleted")
    body["entry"][0]["changes"][0]["value"]["messages"] = [
        {"from": "919876543210", "type": "text", "text": {"body": "hi"}},
    ]
    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(body)
    assert summary.ignored == 1
    assert summary.incoming_messages == 1


@pytest.mark.parametrize("body", [None, [], {"entry": "nope"}, {"entry": [{"changes": [None]}]}])
async def test_malformed_payloads_are_harmless(test_db, store_config, body):
    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(body)
    assert summary.applied == 0


def test_handshake_echoes_challenge(store_config):
    reconciler = DeliveryReconciler(None, store_config)
    assert reconciler.verify_handshake("subscribe", "verify-me", "12345") == "12345"


@pytest.mark.parametrize("mode,token", [
    ("subscribe", "wrong"), ("unsubscribe", "verify-me"), (None, None),
])
def test_handshake_rejects(store_config, mode, token):
    with pytest.raises(AuthorizationError):
        DeliveryReconciler(None, store_config).verify_handshake(mode, token, "1")


# ─── Email ──────────────────────────────────────────────────────


def _signed_headers(payload: bytes, msg_id="msg_1", timestamp=NOW):
    signature = compute_svix_signature(msg_id, str(timestamp), payload, SECRET)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(timestamp),
        "svix-signature": f"v1,{signature}",
    }


def test_email_signature_accepted(store_config):
    payload = b'{"type":"email.delivered"}'
    DeliveryReconciler(None, store_config).verify_email_signature(
        payload, _signed_headers(payload), now=NOW + 10,
    )


@pytest.mark.parametrize("tamper", ["body", "stale", "missing"])
def test_email_signature_rejected(store_config, tamper):
    payload = b'{"type":"email.delivered"}'
    headers = _signed_headers(payload)
    now = NOW
    if tamper == "body":
        payload = b'{"type":"email.bounced"}'
    elif tamper == "stale":
        now = NOW + 3600
    else:
        headers.pop("svix-signature")
    with pytest.raises(WebhookSignatureError):
        DeliveryReconciler(None, store_config).verify_email_signature(
            payload, headers, now=now,
        )


def test_email_signature_requires_secret(store_config):
    config = replace(store_config, resend_webhook_secret="")
    payload = b"{}"
    with pytest.raises(WebhookSignatureError):
        DeliveryReconciler(None, config).verify_email_signature(
            payload, _signed_headers(payload), now=NOW,
        )


async def test_email_events_correlate_by_message_id(
    test_db, store_config, cart_lines, read_db,
):
    order_id = await _paid_order(
        test_db, store_config, cart_lines,
        email_message_id="email-abc", email_delivery_status="sent",
    )
    reconciler = DeliveryReconciler(test_db, store_config)

    summary = await reconciler.handle_email(json.loads(
        '{"type": "email.opened", "data": {"email_id": "email-abc"}}',
    ))
    assert summary.applied == 1
    assert (await _email_delivery(read_db, order_id))[0] == "read"

    await reconciler.handle_email({"type": "email.delivered", "data": {"email_id": "email-abc"}})
    assert (await _email_delivery(read_db, order_id))[0] == "read"
    assert (await _delivery(read_db, order_id))[0] == "pending"


async def test_email_bounce_records_reason(test_db, store_config, cart_lines, read_db):
    order_id = await _paid_order(
        test_db, store_config, cart_lines, email_message_id="email-abc",
    )
    await DeliveryReconciler(test_db, store_config).handle_email({
        "type": "email.bounced",
        "data": {"email_id": "email-abc", "bounce": {"message": "Mailbox does not exist"}},
    })
    assert await _email_delivery(read_db, order_id) == ("failed", "Mailbox does not exist")


async def test_email_unknown_id_and_informational_events(test_db, store_config):
    reconciler = DeliveryReconciler(test_db, store_config)
    unmatched = await reconciler.handle_email(
        {"type": "email.delivered", "data": {"email_id": "nobody"}},
    )
    delayed = await reconciler.handle_email(
        {"type": "email.delivery_delayed", "data": {"email_id": "nobody"}},
    )
    assert unmatched.unmatched == 1
    assert delayed.ignored == 1


async def test_email_bounce_leaves_whatsapp_status(
    test_db, store_config, cart_lines, read_db,
):
    order_id = await _paid_order(
        test_db, store_config, cart_lines,
        whatsapp_message_id="wamid.ONE", email_message_id="email-abc",
    )
    reconciler = DeliveryReconciler(test_db, store_config)

    await reconciler.handle_whatsapp(_whatsapp_status("read"))
    summary = await reconciler.handle_email({
        "type": "email.bounced",
        "data": {"email_id": "email-abc", "bounce": {"message": "Mailbox full"}},
    })

    assert summary.applied == 1
    assert (await _delivery(read_db, order_id))[0] == "read"
    assert (await _email_delivery(read_db, order_id))[0] == "failed"


# ─── Per-event isolation ────────────────────────────────────────


def _with_statuses(*events):
    body = _whatsapp_status("sent")
    body["entry"][0]["changes"][0]["value"]["statuses"] = list(events)
    return body


async def test_malformed_id_does_not_drop_later_statuses(
    test_db, store_config, cart_lines, read_db,
):
    order_id = await _paid_order(test_db, store_config, cart_lines)
    body = _with_statuses(
        {"id": {"bad": 1}, "status": "sent", "recipient_id": "919876543210"},
        {"id": "wamid.X", "status": "delivered", "recipient_id": "919876543210"},
    )

    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(body)

    assert summary.failed == 0
    assert summary.applied == 2
    assert (await _delivery(read_db, order_id))[0] == "delivered"


async def test_database_error_on_one_status_keeps_the_rest(
    test_db, store_config, cart_lines, read_db, monkeypatch,
):
    order_id = await _paid_order(
        test_db, store_config, cart_lines, whatsapp_message_id="wamid.ONE",
    )
    original = DeliveryReconciler._whatsapp_candidates
    seen = []

    async def locked_once(self, event):
        seen.append(event.status)
        if len(seen) == 1:
            raise OperationalError("SELECT orders", {}, Exception("database is locked"))
        return await original(self, event)

    monkeypatch.setattr(DeliveryReconciler, "_whatsapp_candidates", locked_once)
    body = _with_statuses(
        {"id": "wamid.ONE", "status": "sent", "recipient_id": "919876543210"},
        {"id": "wamid.ONE", "status": "delivered", "recipient_id": "919876543210"},
    )

    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(body)

    assert seen == ["sent", "delivered"]
    assert summary.failed == 1
    assert summary.applied == 1
    assert (await _delivery(read_db, order_id))[0] == "delivered"


async def test_short_recipient_matches_nothing(
    test_db, store_config, cart_lines, read_db,
):
    order_id = await _paid_order(test_db, store_config, cart_lines)

    summary = await DeliveryReconciler(test_db, store_config).handle_whatsapp(
        _whatsapp_status("delivered", message_id=None, recipient="3210"),
    )

    assert summary.unmatched == 1
    assert (await _delivery(read_db, order_id))[0] == "pending"
