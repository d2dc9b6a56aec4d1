"""Notification Dispatcher — sends download links over WhatsApp and email.

Invariants:
    - One download URL per product: {public_base_url}/api/v1/downloads?token=...
    - Every attempt (real or simulated) increments Order.delivery_attempts atomically
    - A successful send stores the provider message id and advances that channel's
      status (delivery_status or email_delivery_status) to sent through the
      lattice; a failed send stores last_delivery_error
    - Provider failures propagate as MessagingProviderError; no automatic retry

Design Decisions:
    - Sentinel credentials ("dummy"/"test") simulate the send and return a preview,
      so staging stores can run the full checkout chain without a provider account
    - deliver_order() catches per-channel failures: one channel failing must not
      hide the other's result from the checkout caller
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import DeliveryChannel, DeliveryStatus, OrderStatus
from storefront.core.errors import (
    ConflictError,
    ErrorContext,
    MessagingProviderError,
    ResourceNotFoundError,
    ValidationError,
)
from storefront.core.message_format import (
    EMAIL_SUBJECT,
    DownloadLink,
    build_download_links,
    format_email_html,
    format_whatsapp_message,
)
from storefront.core.phone_numbers import normalize_phone
from storefront.infrastructure.email_client import ResendEmailClient
from storefront.infrastructure.whatsapp_client import WhatsAppClient
from storefront.models.order import Order
from storefront.services.delivery_reconciler import apply_delivery_status
from storefront.services.settings_resolver import StoreConfig
from storefront.services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 1000


@dataclass(frozen=True)
class ProductDownload:
    """A purchased product and the token its link carries."""
    name: str
    token: str


@dataclass
class DispatchResult:
    channel: DeliveryChannel
    success: bool
    simulated: bool = False
    disabled: bool = False
    message_id: str | None = None
    preview: dict | None = None
    error: str | None = None


class NotificationDispatcher:
    """Delivery messages — the last stage of the checkout chain."""

    def __init__(
        self,
        db: AsyncSession,
        config: StoreConfig,
        whatsapp_client: WhatsAppClient | None = None,
        email_client: ResendEmailClient | None = None,
    ):
        self.db = db
        self.config = config
        self.whatsapp_client = whatsapp_client or WhatsAppClient(
            access_token=config.whatsapp_access_token,
            phone_number_id=config.whatsapp_phone_number_id,
            api_base=config.whatsapp_api_base,
            timeout_seconds=config.provider_timeout_seconds,
        )
        self.email_client = email_client or ResendEmailClient(
            api_key=config.resend_api_key,
            sender=config.email_from,
            api_base=config.resend_api_base,
            timeout_seconds=config.provider_timeout_seconds,
        )

    async def send_whatsapp(
        self,
        order_id: UUID,
        customer_phone: str,
        customer_name: str | None,
        products: list[ProductDownload],
    ) -> DispatchResult:
        channel = DeliveryChannel.WHATSAPP
        order_number = await self._order_number(order_id)
        to = normalize_phone(customer_phone, self.config.default_country_code)
        if not to:
            raise ValidationError("Customer phone is required", "customer_phone")
        if not products:
            raise ValidationError("At least one product is required", "products")

        links = self._links(products)
        body = format_whatsapp_message(
            self.config.store_name, order_number, customer_name, links,
            self.config.download_ttl_days, self.config.max_downloads,
        )
        preview = {"to": to, "body": body, "download_links": _link_dicts(links)}

        if not self.config.whatsapp_enabled:
            logger.info(
                "WhatsApp delivery disabled, message not sent",
                extra={"order_id": order_id, "channel": channel.value},
            )
            return DispatchResult(
                channel, success=False, disabled=True,
                preview={**preview, "status": "disabled"},
            )

        if self.config.whatsapp_dry_run:
            return await self._simulate(order_id, channel, preview)

        if not (self.config.whatsapp_access_token and self.config.whatsapp_phone_number_id):
            await self._record_failure(order_id, channel, "WhatsApp is not configured")
            raise MessagingProviderError(
                "whatsapp", "access token or phone number id not configured",
                ErrorContext(order_id=str(order_id), order_number=order_number),
            )

        try:
            message_id = await self.whatsapp_client.send_text(to, body)
        except MessagingProviderError as e:
            await self._record_failure(order_id, channel, e.detail)
            raise
        await self._record_success(order_id, channel, message_id)
        return DispatchResult(channel, success=True, message_id=message_id)

    async def send_email(
        self,
        order_id: UUID,
        customer_email: str,
        customer_name: str | None,
        products: list[ProductDownload],
    ) -> DispatchResult:
        channel = DeliveryChannel.EMAIL
        order_number = await self._order_number(order_id)
        to = (customer_email or "").strip()
        if not to or "@" not in to:
            raise ValidationError("A valid customer email is required", "customer_email")
        if not products:
            raise ValidationError("At least one product is required", "products")

        links = self._links(products)
        html = format_email_html(
            self.config.store_name, order_number, customer_name, links,
            self.config.download_ttl_days, self.config.max_downloads,
        )
        preview = {
            "to": to, "subject": EMAIL_SUBJECT, "download_links": _link_dicts(links),
        }

        if self.config.email_dry_run:
            return await self._simulate(order_id, channel, preview)

        if not (self.config.resend_api_key and self.config.email_from):
            await self._record_failure(order_id, channel, "Email is not configured")
            raise MessagingProviderError(
                "resend", "api key or sender address not configured",
                ErrorContext(order_id=str(order_id), order_number=order_number),
            )

        try:
            message_id = await self.email_client.send(to, EMAIL_SUBJECT, html)
        except MessagingProviderError as e:
            await self._record_failure(order_id, channel, e.detail)
            raise
        await self._record_success(order_id, channel, message_id)
        return DispatchResult(channel, success=True, message_id=message_id)

    async def deliver_order(self, order_id: UUID) -> dict[str, DispatchResult]:
        """Send links for a paid order: email always, WhatsApp when opted in."""
        order = await self.db.get(Order, order_id)
        if not order:
            raise ResourceNotFoundError("Order", str(order_id))
        if order.status != OrderStatus.PAID.value:
            raise ConflictError(
                f"Order is {order.status}; only paid orders are delivered",
                ErrorContext(order_id=str(order_id), order_number=order.order_number),
            )
        email, phone = order.customer_email, order.customer_phone
        name, optin = order.customer_name, order.whatsapp_optin

        tokens = await TokenIssuer(self.db, self.config).issue_for_order(order_id)
        products = [ProductDownload(t.product_name, t.token) for t in tokens]
        if not products:
            logger.warning(
                "Paid order has no download tokens, nothing to deliver",
                extra={"order_id": order_id},
            )
            return {}

        results: dict[str, DispatchResult] = {}
        channels = [DeliveryChannel.EMAIL]
        if optin:
            channels.append(DeliveryChannel.WHATSAPP)
        for channel in channels:
            try:
                if channel == DeliveryChannel.EMAIL:
                    result = await self.send_email(order_id, email, name, products)
                else:
                    result = await self.send_whatsapp(order_id, phone, name, products)
                results[channel.value] = result
            except (MessagingProviderError, ValidationError) as e:
                logger.error(
                    f"Delivery over {channel.value} failed: {e.message}",
                    extra={"order_id": order_id, "channel": channel.value,
                           "error_code": e.code},
                )
                results[channel.value] = DispatchResult(
                    channel, success=False, error=e.message,
                )
        return results

    # ─── Helpers ────────────────────────────────────────────────

    def _links(self, products: list[ProductDownload]) -> list[DownloadLink]:
        return build_download_links(
            self.config.public_base_url, [(p.name, p.token) for p in products],
        )

    async def _order_number(self, order_id: UUID) -> str:
        order = await self.db.get(Order, order_id)
        if not order:
            raise ResourceNotFoundError("Order", str(order_id))
        return order.order_number

    async def _simulate(
        self, order_id: UUID, channel: DeliveryChannel, preview: dict,
    ) -> DispatchResult:
        await self._bump_attempts(order_id)
        await self.db.commit()
        logger.info(
            f"Dry run: {channel.value} message simulated",
            extra={"order_id": order_id, "channel": channel.value},
        )
        return DispatchResult(
            channel, success=True, simulated=True,
            preview={**preview, "status": "simulated"},
        )

    async def _record_success(
        self, order_id: UUID, channel: DeliveryChannel, message_id: str | None,
    ) -> None:
        values: dict[str, object] = {"last_delivery_error": None}
        if message_id:
            column = "whatsapp_message_id" if channel == DeliveryChannel.WHATSAPP else "email_message_id"
            values[column] = message_id
        await self._bump_attempts(order_id, **values)
        await apply_delivery_status(
            self.db, order_id, DeliveryStatus.SENT, channel=channel,
        )
        await self.db.commit()
        logger.info(
            f"{channel.value} message sent",
            extra={"order_id": order_id, "channel": channel.value,
                   "delivery_status": DeliveryStatus.SENT.value},
        )

    async def _record_failure(
        self, order_id: UUID, channel: DeliveryChannel, error: str,
    ) -> None:
        await self._bump_attempts(
            order_id, last_delivery_error=f"{channel.value}: {error}"[:_MAX_ERROR_LENGTH],
        )
        await self.db.commit()
        logger.warning(
            f"{channel.value} delivery failed: {error}",
            extra={"order_id": order_id, "channel": channel.value,
                   "error_code": "MESSAGING_PROVIDER_ERROR"},
        )

    async def _bump_attempts(self, order_id: UUID, **values) -> None:
        await self.db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(
                delivery_attempts=Order.delivery_attempts + 1,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False),
        )


def _link_dicts(links: list[DownloadLink]) -> list[dict]:
    return [{"name": link.name, "url": link.url} for link in links]
