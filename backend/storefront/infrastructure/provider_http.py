"""Provider HTTP — one POST helper shared by the payment and messaging clients.

Invariants:
    - Timeouts, transport failures, non-2xx statuses and non-JSON bodies all raise
      the error built by `error_factory` (an UpstreamError subclass)
    - No retries: retry policy belongs to the caller
    - Provider detail goes to the log and to UpstreamError.detail, never to the user

Design Decisions:
    - Fresh httpx.AsyncClient per call: handlers are stateless and short-lived
    - Injectable transport: tests swap in httpx.MockTransport, no network
"""

import logging
from typing import Callable

import httpx

from storefront.core.errors import UpstreamError

logger = logging.getLogger(__name__)


async def post_json(
    url: str,
    *,
    payload: dict,
    error_factory: Callable[[str], UpstreamError],
    headers: dict[str, str] | None = None,
    auth: tuple[str, str] | None = None,
    timeout_seconds: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """POST JSON and return the decoded JSON body of a 2xx response."""
    try:
        async with httpx.AsyncClient(
            timeout=timeout_seconds, transport=transport,
        ) as client:
            response = await client.post(
                url, json=payload, headers=headers, auth=auth,
            )
    except httpx.TimeoutException as e:
        raise error_factory(f"timeout calling {url}: {e}")
    except httpx.HTTPError as e:
        raise error_factory(f"transport error calling {url}: {e}")

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.is_error:
        detail = _describe_error(body) or response.text[:500]
        logger.warning(
            f"Provider returned {response.status_code}: {detail}",
        )
        raise error_factory(f"HTTP {response.status_code}: {detail}")
    if not isinstance(body, dict):
        raise error_factory(f"unexpected response body from {url}")
    return body


def _describe_error(body: object) -> str | None:
    """Pull the human-readable message out of the providers' error envelopes."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message") or error.get("description")
    if isinstance(body.get("message"), str):
        return body["message"]
    return None
