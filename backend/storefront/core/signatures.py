"""Signatures — constant-time verification of gateway and webhook credentials.

Invariants:
    - Every comparison of a secret or signature goes through hmac.compare_digest
    - Razorpay payment signature = hex HMAC-SHA256(secret, "order_id|payment_id")
    - Svix signature = base64 HMAC-SHA256(secret, "id.timestamp.body"), v1 scheme,
      timestamp within SVIX_TOLERANCE_SECONDS of now
    - Functions return bool and never raise on malformed input

Design Decisions:
    - Pure functions with `now` injected: deterministic tests for replay windows
"""

import base64
import binascii
import hashlib
import hmac

SVIX_TOLERANCE_SECONDS = 300


def secrets_match(presented: str | None, expected: str | None) -> bool:
    """Constant-time equality; an empty expected value never matches."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def compute_payment_signature(
    gateway_order_id: str, payment_id: str, secret: str,
) -> str:
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    gateway_order_id: str, payment_id: str, signature: str | None, secret: str,
) -> bool:
    """Check the gateway's checkout signature binding order id and payment id."""
    if not signature or not secret:
        return False
    expected = compute_payment_signature(gateway_order_id, payment_id, secret)
    return secrets_match(signature, expected)


def _svix_key(secret: str) -> bytes | None:
    raw = secret[len("whsec_"):] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return None


def compute_svix_signature(
    msg_id: str, timestamp: str, payload: bytes, secret: str,
) -> str | None:
    key = _svix_key(secret)
    if key is None:
        return None
    signed = f"{msg_id}.{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(key, signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_svix_signature(
    payload: bytes,
    msg_id: str | None,
    timestamp: str | None,
    signature_header: str | None,
    secret: str,
    now: int,
) -> bool:
    """Verify a Svix-signed webhook (Resend). Header holds space-separated 'v1,<sig>'."""
    if not (msg_id and timestamp and signature_header and secret):
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    if abs(now - sent_at) > SVIX_TOLERANCE_SECONDS:
        return False
    expected = compute_svix_signature(msg_id, timestamp, payload, secret)
    if expected is None:
        return False
    for candidate in signature_header.split(" "):
        version, _, sig = candidate.partition(",")
        if version == "v1" and secrets_match(sig, expected):
            return True
    return False
