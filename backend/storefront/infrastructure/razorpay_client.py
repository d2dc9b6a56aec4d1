"""Razorpay Client — creates gateway orders for the checkout sheet.

Invariants:
    - Amounts are sent in minor units (paise), as the Orders API expects
    - Test mode never contacts Razorpay: it returns a simulated `order_test_<ms>` handle
    - All failures surface as PaymentGatewayError (core/errors.py)

Design Decisions:
    - Basic auth with key id / key secret, the gateway's server-side scheme
    - Receipt = our order number: lets support match dashboard entries to orders
"""

import logging
import time

import httpx

from storefront.core.errors import PaymentGatewayError
from storefront.infrastructure.provider_http import post_json

logger = logging.getLogger(__name__)


class RazorpayClient:
    """Thin async wrapper over the Razorpay Orders API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        test_mode: bool = False,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.api_base = api_base.rstrip("/")
        self.test_mode = test_mode
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def create_order(
        self, amount_minor: int, currency: str, receipt: str,
    ) -> str:
        """Create a gateway order and return its id."""
        if self.test_mode:
            gateway_order_id = f"order_test_{int(time.time() * 1000)}"
            logger.info(
                f"Test mode: simulated gateway order {gateway_order_id}",
                extra={"order_number": receipt, "provider": "razorpay"},
            )
            return gateway_order_id

        if not self.key_id or not self._key_secret:
            raise PaymentGatewayError("razorpay credentials are not configured")

        body = await post_json(
            f"{self.api_base}/orders",
            payload={
                "amount": amount_minor,
                "currency": currency,
                "receipt": receipt,
            },
            auth=(self.key_id, self._key_secret),
            error_factory=PaymentGatewayError,
            timeout_seconds=self.timeout_seconds,
            transport=self._transport,
        )
        gateway_order_id = body.get("id")
        if not gateway_order_id:
            raise PaymentGatewayError("order response carried no id")
        return str(gateway_order_id)
