"""Order Ledger — creates an order and its line items as one transaction.

Invariants:
    - Validation (cart, contact, catalog, prices) completes before any write
    - Order number comes from an OrderNumberTicket row (database-assigned sequence)
    - Order row and every OrderItem row commit together or not at all
    - The payment gateway is never called while a transaction is open
    - Persisted total equals the sum of the line prices (quantity always 1)

Design Decisions:
    - The ticket commits on its own before the gateway call, so no database
      transaction is held open across the HTTP round trip. A gateway failure
      leaves a consumed ticket (a gap in the sequence) and no order row
    - Product name/price snapshotted from the catalog entry, not the client payload
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.checkout_rules import (
    CartLine,
    CatalogEntry,
    check_against_catalog,
    compute_total,
    format_order_number,
    validate_checkout,
)
from storefront.core.domain_types import DeliveryStatus, OrderStatus
from storefront.core.errors import ResourceNotFoundError
from storefront.core.phone_numbers import normalize_phone
from storefront.infrastructure.razorpay_client import RazorpayClient
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.models.order_number_ticket import OrderNumberTicket
from storefront.models.product import Product
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedOrder:
    """What the client needs to open the payment sheet."""
    order_id: UUID
    order_number: str
    gateway_order_id: str
    amount_minor: int
    currency: str
    gateway_public_key: str


class OrderLedger:
    """Order creation — the first stage of the checkout chain."""

    def __init__(
        self, db: AsyncSession, config: StoreConfig,
        gateway: RazorpayClient | None = None,
    ):
        self.db = db
        self.config = config
        self.gateway = gateway or RazorpayClient(
            key_id=config.razorpay_key_id,
            key_secret=config.razorpay_key_secret,
            api_base=config.razorpay_api_base,
            test_mode=config.razorpay_test_mode,
            timeout_seconds=config.provider_timeout_seconds,
        )

    async def create_order(
        self,
        lines: list[CartLine],
        customer_email: str,
        customer_phone: str,
        customer_name: str | None = None,
        whatsapp_optin: bool = False,
    ) -> CreatedOrder:
        validate_checkout(lines, customer_email, customer_phone)
        catalog = await self._load_catalog({line.product_id for line in lines})
        missing = check_against_catalog(lines, catalog)
        if missing:
            raise ResourceNotFoundError("Product", str(missing[0]))

        total = compute_total(lines)
        logger.info(
            f"Creating order: {len(lines)} item(s), total {total} minor units",
        )

        try:
            order_number = await self._next_order_number()
            gateway_order_id = await self.gateway.create_order(
                total, self.config.currency, order_number,
            )
            order = Order(
                order_number=order_number,
                customer_email=customer_email.strip(),
                customer_phone=customer_phone.strip(),
                customer_phone_normalized=normalize_phone(
                    customer_phone, self.config.default_country_code,
                ),
                customer_name=(customer_name or "").strip() or None,
                total_amount_minor=total,
                currency=self.config.currency,
                status=OrderStatus.PENDING.value,
                delivery_status=DeliveryStatus.PENDING.value,
                email_delivery_status=DeliveryStatus.PENDING.value,
                whatsapp_optin=whatsapp_optin,
                gateway_order_id=gateway_order_id,
            )
            self.db.add(order)
            await self.db.flush()
            self.db.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    product_name=catalog[line.product_id].name,
                    product_price_minor=line.price_minor,
                    quantity=1,
                )
                for line in lines
            ])
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error("Order creation rolled back", exc_info=True)
            raise

        logger.info(
            "Order created",
            extra={"order_id": order.id, "order_number": order_number},
        )
        return CreatedOrder(
            order_id=order.id,
            order_number=order_number,
            gateway_order_id=gateway_order_id,
            amount_minor=total,
            currency=self.config.currency,
            gateway_public_key=self.config.razorpay_key_id,
        )

    async def _load_catalog(self, product_ids: set[UUID]) -> dict[UUID, CatalogEntry]:
        result = await self.db.execute(
            select(Product).where(Product.id.in_(product_ids)),
        )
        return {
            p.id: CatalogEntry(
                product_id=p.id, name=p.name,
                price_minor=p.price_minor, is_active=p.is_active,
            )
            for p in result.scalars().all()
        }

    async def _next_order_number(self) -> str:
        """Draw a ticket and commit it at once; no transaction stays open afterwards."""
        ticket = OrderNumberTicket()
        self.db.add(ticket)
        await self.db.flush()
        order_number = format_order_number(ticket.id, datetime.now(timezone.utc).date())
        await self.db.commit()
        return order_number

    async def find_by_number(self, order_number: str) -> Order:
        result = await self.db.execute(
            select(Order).where(Order.order_number == order_number.strip())
            .execution_options(populate_existing=True),
        )
        order = result.scalar_one_or_none()
        if not order:
            raise ResourceNotFoundError("Order", order_number)
        return order
