"""Email Client — sends transactional email through the Resend API.

Invariants:
    - Returns the Resend email id used later to correlate delivery webhooks
    - All failures surface as MessagingProviderError(provider="resend")
"""

from functools import partial

import httpx

from storefront.core.errors import MessagingProviderError
from storefront.infrastructure.provider_http import post_json


class ResendEmailClient:
    """Async wrapper over POST /emails."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_base: str = "https://api.resend.com",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self.sender = sender
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def send(self, to: str, subject: str, html: str) -> str | None:
        result = await post_json(
            f"{self.api_base}/emails",
            payload={
                "from": self.sender,
                "to": [to],
                "subject": subject,
                "html": html,
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
            error_factory=partial(MessagingProviderError, "resend"),
            timeout_seconds=self.timeout_seconds,
            transport=self._transport,
        )
        return result.get("id")
