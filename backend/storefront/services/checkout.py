"""Checkout — payment verification followed by delivery of the download links.

Invariants:
    - Delivery runs only for the caller that moved the order to paid
    - A delivery failure never un-verifies a payment: it is logged and recorded on
      the order (delivery_attempts, last_delivery_error) for a later resend
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import StorefrontError
from storefront.services.notification_dispatcher import (
    DispatchResult,
    NotificationDispatcher,
)
from storefront.services.payment_verifier import PaymentConfirmation, PaymentVerifier
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    confirmation: PaymentConfirmation
    deliveries: dict[str, DispatchResult] = field(default_factory=dict)


class CheckoutService:
    def __init__(
        self, db: AsyncSession, config: StoreConfig,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.db = db
        self.config = config
        self.verifier = PaymentVerifier(db, config)
        self.dispatcher = dispatcher or NotificationDispatcher(db, config)

    async def confirm_payment(
        self,
        order_id: UUID,
        payment_id: str,
        gateway_order_id: str,
        signature: str | None,
    ) -> CheckoutResult:
        confirmation = await self.verifier.verify_payment(
            order_id, payment_id, gateway_order_id, signature,
        )
        if confirmation.already_verified:
            return CheckoutResult(confirmation)

        try:
            deliveries = await self.dispatcher.deliver_order(order_id)
        except (StorefrontError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.error(
                f"Delivery after payment failed: {e}",
                extra={"order_id": order_id,
                       "order_number": confirmation.order_number},
            )
            deliveries = {}
        return CheckoutResult(confirmation, deliveries)
