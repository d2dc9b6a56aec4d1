"""Delivery Reconciler — folds provider delivery callbacks into per-channel order status.

Invariants:
    - Every write goes through apply_delivery_status: one conditional UPDATE whose
      WHERE <status column> IN (...) set comes from the lattice, so concurrent or
      reordered callbacks can never move an order backwards or out of failed
    - WhatsApp callbacks and sends drive Order.delivery_status; Resend callbacks
      and email sends drive Order.email_delivery_status. A bounced email never
      touches the WhatsApp status
    - WhatsApp events correlate by whatsapp_message_id first, then by the last 10
      phone digits among the most recent paid orders
    - Each WhatsApp status event commits or rolls back on its own; a database
      error on one event is counted as failed and the rest are still applied
    - Email events correlate by email_message_id only
    - Unknown statuses / event types are acknowledged and ignored

Design Decisions:
    - Handshake token compared in constant time; mismatch never echoes the token
    - Svix verification done here, not in the route: routes stay thin
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.delivery_lattice import (
    map_email_event,
    map_whatsapp_status,
    predecessors_of,
)
from storefront.core.domain_types import DeliveryChannel, DeliveryStatus, OrderStatus
from storefront.core.errors import AuthorizationError, WebhookSignatureError
from storefront.core.phone_numbers import matching_suffix
from storefront.core.signatures import secrets_match, verify_svix_signature
from storefront.core.webhook_events import (
    StatusEvent,
    parse_email_event,
    parse_whatsapp_payload,
)
from storefront.models.order import Order
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    applied: int = 0
    skipped: int = 0
    unmatched: int = 0
    ignored: int = 0
    failed: int = 0
    incoming_messages: int = 0


_STATUS_COLUMNS = {
    DeliveryChannel.WHATSAPP: "delivery_status",
    DeliveryChannel.EMAIL: "email_delivery_status",
}


async def apply_delivery_status(
    db: AsyncSession,
    order_id: UUID,
    incoming: DeliveryStatus,
    error: str | None = None,
    channel: DeliveryChannel = DeliveryChannel.WHATSAPP,
) -> bool:
    """Advance one channel's status along the lattice. Does not commit. True if the row changed."""
    allowed = sorted(status.value for status in predecessors_of(incoming))
    if not allowed:
        return False
    name = _STATUS_COLUMNS[channel]
    values: dict[str, object] = {
        name: incoming.value,
        "updated_at": datetime.now(timezone.utc),
    }
    if error is not None:
        values["last_delivery_error"] = error
    result = await db.execute(
        update(Order)
        .where(Order.id == order_id)
        .where(getattr(Order, name).in_(allowed))
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


class DeliveryReconciler:
    """Webhook-side handler for WhatsApp and email delivery callbacks."""

    def __init__(self, db: AsyncSession, config: StoreConfig):
        self.db = db
        self.config = config

    # ─── WhatsApp ───────────────────────────────────────────────

    def verify_handshake(
        self, mode: str | None, token: str | None, challenge: str | None,
    ) -> str:
        """Return the challenge to echo, or raise AuthorizationError."""
        if mode == "subscribe" and secrets_match(
            token, self.config.whatsapp_webhook_verify_token,
        ):
            logger.info("WhatsApp webhook verified", extra={"provider": "whatsapp"})
            return challenge or ""
        logger.warning(
            "WhatsApp webhook verification failed",
            extra={"provider": "whatsapp", "error_code": "WEBHOOK_VERIFY_FAILED"},
        )
        raise AuthorizationError("Forbidden", "WEBHOOK_VERIFY_FAILED")

    async def handle_whatsapp(self, body: object) -> ReconcileSummary:
        statuses, messages = parse_whatsapp_payload(body)
        summary = ReconcileSummary(incoming_messages=len(messages))
        for message in messages:
            logger.info(
                f"Incoming WhatsApp {message.message_type} message (not handled)",
                extra={"provider": "whatsapp", "channel": "whatsapp"},
            )

        for event in statuses:
            incoming = map_whatsapp_status(event.status)
            if incoming is None:
                summary.ignored += 1
                continue
            try:
                await self._apply_whatsapp_event(event, incoming, summary)
            except SQLAlchemyError as e:
                await self.db.rollback()
                summary.failed += 1
                logger.warning(
                    f"WhatsApp status {event.status} not applied: {type(e).__name__}",
                    extra={"provider": "whatsapp", "channel": "whatsapp",
                           "error_code": "DATABASE_ERROR"},
                )
        return summary

    async def _apply_whatsapp_event(
        self, event: StatusEvent, incoming: DeliveryStatus, summary: ReconcileSummary,
    ) -> None:
        order_ids = await self._whatsapp_candidates(event)
        if not order_ids:
            logger.info(
                f"No order matches WhatsApp status {event.status}",
                extra={"provider": "whatsapp"},
            )
            summary.unmatched += 1
            return
        error = _describe_whatsapp_errors(event) if incoming == DeliveryStatus.FAILED else None
        applied = skipped = 0
        for order_id in order_ids:
            if await apply_delivery_status(self.db, order_id, incoming, error):
                applied += 1
                logger.info(
                    f"Delivery status -> {incoming.value}",
                    extra={"order_id": order_id, "channel": "whatsapp",
                           "delivery_status": incoming.value},
                )
            else:
                skipped += 1
        await self.db.commit()
        summary.applied += applied
        summary.skipped += skipped

    async def _whatsapp_candidates(self, event: StatusEvent) -> list[UUID]:
        if event.message_id:
            result = await self.db.execute(
                select(Order.id)
                .where(Order.whatsapp_message_id == event.message_id)
                .where(Order.status == OrderStatus.PAID.value),
            )
            by_id = list(result.scalars().all())
            if by_id:
                return by_id

        suffix = matching_suffix(event.recipient)
        if not suffix:
            return []
        result = await self.db.execute(
            select(Order.id)
            .where(Order.status == OrderStatus.PAID.value)
            .where(Order.customer_phone_normalized.like(f"%{suffix}"))
            .order_by(Order.created_at.desc())
            .limit(self.config.reconcile_candidate_limit),
        )
        return list(result.scalars().all())

    # ─── Email (Resend / Svix) ──────────────────────────────────

    def verify_email_signature(
        self, payload: bytes, headers: dict[str, str], now: int | None = None,
    ) -> None:
        secret = self.config.resend_webhook_secret
        if not secret:
            logger.error(
                "Email webhook secret is not configured",
                extra={"provider": "resend", "error_code": "CONFIGURATION_ERROR"},
            )
            raise WebhookSignatureError("resend")
        if not verify_svix_signature(
            payload,
            headers.get("svix-id"),
            headers.get("svix-timestamp"),
            headers.get("svix-signature"),
            secret,
            int(time.time()) if now is None else now,
        ):
            logger.warning(
                "Email webhook signature rejected",
                extra={"provider": "resend", "error_code": "WEBHOOK_SIGNATURE_INVALID"},
            )
            raise WebhookSignatureError("resend")

    async def handle_email(self, body: object) -> ReconcileSummary:
        summary = ReconcileSummary()
        event = parse_email_event(body)
        incoming = map_email_event(event.event_type) if event else None
        if event is None or incoming is None or not event.email_id:
            summary.ignored += 1
            return summary

        result = await self.db.execute(
            select(Order.id).where(Order.email_message_id == event.email_id),
        )
        order_ids = list(result.scalars().all())
        if not order_ids:
            summary.unmatched += 1
            return summary

        for order_id in order_ids:
            if await apply_delivery_status(
                self.db, order_id, incoming, event.reason, DeliveryChannel.EMAIL,
            ):
                summary.applied += 1
                logger.info(
                    f"Delivery status -> {incoming.value} ({event.event_type})",
                    extra={"order_id": order_id, "channel": "email",
                           "delivery_status": incoming.value},
                )
            else:
                summary.skipped += 1
        await self.db.commit()
        return summary


def _describe_whatsapp_errors(event: StatusEvent) -> str:
    parts = []
    for err in event.errors:
        if isinstance(err, dict):
            parts.append(str(err.get("title") or err.get("message") or err.get("code")))
    return "; ".join(parts) or "WhatsApp reported delivery failure"
