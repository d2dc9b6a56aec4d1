"""Webhook Events — lenient parsing of provider callback payloads into typed events.

Invariants:
    - Parsing never raises: malformed fragments are skipped, not fatal
    - WhatsApp: only `entry[].changes[]` with field == "messages" are read
    - Events preserve payload order (the reconciler applies them sequentially)

Design Decisions:
    - Plain dicts in, frozen dataclasses out: no pydantic model for provider payloads,
      because one bad element must not reject the whole delivery (provider would retry)
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StatusEvent:
    """A delivery-status callback for one outbound message."""
    message_id: str | None
    recipient: str
    status: str
    timestamp: str | None = None
    errors: list = field(default_factory=list)


@dataclass(frozen=True)
class IncomingMessage:
    """A customer-originated message (logged only)."""
    sender: str
    message_type: str
    text: str | None


@dataclass(frozen=True)
class EmailEvent:
    """A Resend webhook event."""
    event_type: str
    email_id: str | None
    recipients: list[str] = field(default_factory=list)
    reason: str | None = None


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _as_str(value) -> str | None:
    return value if isinstance(value, str) else None


def parse_whatsapp_payload(
    body: object,
) -> tuple[list[StatusEvent], list[IncomingMessage]]:
    """Extract status events and incoming messages from a Cloud API webhook body."""
    statuses: list[StatusEvent] = []
    messages: list[IncomingMessage] = []
    if not isinstance(body, dict):
        return statuses, messages

    for entry in _as_list(body.get("entry")):
        if not isinstance(entry, dict):
            continue
        for change in _as_list(entry.get("changes")):
            if not isinstance(change, dict) or change.get("field") != "messages":
                continue
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            statuses.extend(_parse_statuses(value))
            messages.extend(_parse_messages(value))
    return statuses, messages


def _parse_statuses(value: dict) -> list[StatusEvent]:
    events = []
    for raw in _as_list(value.get("statuses")):
        if not isinstance(raw, dict):
            continue
        recipient = raw.get("recipient_id")
        status = raw.get("status")
        if not isinstance(recipient, (str, int)) or not isinstance(status, str):
            continue
        if recipient == "" or not status:
            continue
        events.append(StatusEvent(
            message_id=_as_str(raw.get("id")),
            recipient=str(recipient),
            status=str(status),
            timestamp=_as_str(raw.get("timestamp")),
            errors=_as_list(raw.get("errors")),
        ))
    return events


def _parse_messages(value: dict) -> list[IncomingMessage]:
    incoming = []
    for raw in _as_list(value.get("messages")):
        if not isinstance(raw, dict):
            continue
        text = raw.get("text")
        incoming.append(IncomingMessage(
            sender=str(raw.get("from", "")),
            message_type=str(raw.get("type", "unknown")),
            text=text.get("body") if isinstance(text, dict) else None,
        ))
    return incoming


def parse_email_event(body: object) -> EmailEvent | None:
    """Extract a Resend event; None when the body is not an event."""
    if not isinstance(body, dict) or not isinstance(body.get("type"), str):
        return None
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    reason = None
    for key in ("bounce", "complaint"):
        detail = data.get(key)
        if isinstance(detail, dict) and detail.get("message"):
            reason = str(detail["message"])
    return EmailEvent(
        event_type=body["type"],
        email_id=_as_str(data.get("email_id")),
        recipients=[str(r) for r in _as_list(data.get("to"))],
        reason=reason,
    )
