"""Payment Verifier — confirms a gateway payment and moves the order to paid.

Invariants:
    - Signature checked in constant time against HMAC-SHA256(key_secret, "oid|pid")
    - Check skipped only when razorpay_test_mode is explicitly true
    - pending -> paid via conditional UPDATE (WHERE status = 'pending'): exactly one
      concurrent caller wins and only the winner issues tokens
    - A rejected signature leaves the order pending with nothing written

Design Decisions:
    - Stored gateway_order_id must match the one presented: a valid signature for
      another order's payment cannot pay this one
    - Repeat verification of a paid order answers already_verified instead of erroring:
      the checkout client retries on flaky networks
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import DeliveryStatus, OrderStatus
from storefront.core.errors import (
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    ErrorContext,
    ResourceNotFoundError,
)
from storefront.core.signatures import verify_payment_signature
from storefront.models.order import Order
from storefront.services.settings_resolver import StoreConfig
from storefront.services.token_issuer import IssuedToken, TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentConfirmation:
    order_id: UUID
    order_number: str
    status: str
    already_verified: bool
    tokens: list[IssuedToken] = field(default_factory=list)


class PaymentVerifier:
    """Gateway callback handling — second stage of the checkout chain."""

    def __init__(self, db: AsyncSession, config: StoreConfig):
        self.db = db
        self.config = config

    async def verify_payment(
        self,
        order_id: UUID,
        payment_id: str,
        gateway_order_id: str,
        signature: str | None,
    ) -> PaymentConfirmation:
        order = await self.db.get(Order, order_id)
        if not order:
            raise ResourceNotFoundError("Order", str(order_id))
        order_number = order.order_number
        ctx = ErrorContext(order_id=str(order_id), order_number=order_number)

        if order.status == OrderStatus.PAID.value:
            logger.info(
                "Payment already verified", extra={"order_number": order_number},
            )
            return PaymentConfirmation(
                order_id, order_number, order.status, already_verified=True,
            )
        if order.status != OrderStatus.PENDING.value:
            raise ConflictError(
                f"Order is {order.status} and cannot be paid", ctx,
            )
        if gateway_order_id != order.gateway_order_id:
            logger.warning(
                "Gateway order id does not match stored order",
                extra={"order_number": order_number, "provider": "razorpay"},
            )
            raise AuthorizationError(
                "Payment does not belong to this order", "PAYMENT_MISMATCH", ctx,
            )
        self._check_signature(gateway_order_id, payment_id, signature, ctx)

        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id)
            .where(Order.status == OrderStatus.PENDING.value)
            .values(
                status=OrderStatus.PAID.value,
                gateway_payment_id=payment_id,
                gateway_signature=signature,
                paid_at=now,
                delivery_status=DeliveryStatus.PENDING.value,
                email_delivery_status=DeliveryStatus.PENDING.value,
                updated_at=now,
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()

        if result.rowcount != 1:
            await self.db.refresh(order)
            if order.status == OrderStatus.PAID.value:
                logger.info(
                    "Lost verification race, order already paid",
                    extra={"order_number": order_number},
                )
                return PaymentConfirmation(
                    order_id, order_number, order.status, already_verified=True,
                )
            raise ConflictError(
                f"Order is {order.status} and cannot be paid", ctx,
            )

        logger.info(
            "Payment verified",
            extra={"order_id": order_id, "order_number": order_number,
                   "provider": "razorpay"},
        )
        tokens = await TokenIssuer(self.db, self.config).issue_for_order(order_id)
        return PaymentConfirmation(
            order_id, order_number, OrderStatus.PAID.value,
            already_verified=False, tokens=tokens,
        )

    def _check_signature(
        self, gateway_order_id: str, payment_id: str,
        signature: str | None, ctx: ErrorContext,
    ) -> None:
        if self.config.razorpay_test_mode:
            logger.warning(
                "Test mode: payment signature not checked",
                extra={"order_number": ctx.order_number, "provider": "razorpay"},
            )
            return
        if not self.config.razorpay_key_secret:
            raise ConfigurationError("razorpay_key_secret", ctx)
        if not verify_payment_signature(
            gateway_order_id, payment_id, signature,
            self.config.razorpay_key_secret,
        ):
            logger.warning(
                "Payment signature mismatch",
                extra={"order_number": ctx.order_number, "provider": "razorpay",
                       "error_code": "INVALID_SIGNATURE"},
            )
            raise AuthorizationError(
                "Invalid payment signature", "INVALID_SIGNATURE", ctx,
            )
