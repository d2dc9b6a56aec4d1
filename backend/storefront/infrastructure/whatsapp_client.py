"""WhatsApp Client — sends text messages through the Meta Cloud API.

Invariants:
    - Recipient must already be normalized (digits with country code)
    - Returns the provider message id (wamid) used later to correlate status webhooks
    - All failures surface as MessagingProviderError(provider="whatsapp")
"""

from functools import partial

import httpx

from storefront.core.errors import MessagingProviderError
from storefront.infrastructure.provider_http import post_json


class WhatsAppClient:
    """Async wrapper over POST /{phone_number_id}/messages."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_base: str = "https://graph.facebook.com/v18.0",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def send_text(self, to: str, body: str) -> str | None:
        result = await post_json(
            f"{self.api_base}/{self.phone_number_id}/messages",
            payload={
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": to,
                "type": "text",
                "text": {"preview_url": True, "body": body},
            },
            headers={"Authorization": f"Bearer {self._access_token}"},
            error_factory=partial(MessagingProviderError, "whatsapp"),
            timeout_seconds=self.timeout_seconds,
            transport=self._transport,
        )
        messages = result.get("messages")
        if isinstance(messages, list) and messages and isinstance(messages[0], dict):
            return messages[0].get("id")
        return None
