"""Delivery-Status Lattice — monotonic ordering for asynchronous delivery callbacks.

Invariants:
    - pending(0) < sent(1) < delivered(2) < read(3); failed(-1) is terminal
    - A status is applied only if it ranks strictly higher than the current one
    - failed is applied from any non-failed state and is never left
    - Result depends only on (current, incoming): duplicates and reordering are harmless

Design Decisions:
    - predecessors_of() turns the rule into a SQL `WHERE delivery_status IN (...)`
      set, so the shell can apply it as one conditional UPDATE (no read-then-write race)
    - Provider vocabularies mapped here (WhatsApp statuses, Resend event types) so
      reconcilers never compare raw provider strings
"""

from storefront.core.domain_types import DeliveryStatus


DELIVERY_RANK: dict[DeliveryStatus, int] = {
    DeliveryStatus.PENDING: 0,
    DeliveryStatus.SENT: 1,
    DeliveryStatus.DELIVERED: 2,
    DeliveryStatus.READ: 3,
    DeliveryStatus.FAILED: -1,
}

_WHATSAPP_STATUSES: dict[str, DeliveryStatus] = {
    "sent": DeliveryStatus.SENT,
    "delivered": DeliveryStatus.DELIVERED,
    "read": DeliveryStatus.READ,
    "failed": DeliveryStatus.FAILED,
}

# delivery_delayed is informational: the message may still arrive
_EMAIL_EVENTS: dict[str, DeliveryStatus] = {
    "email.sent": DeliveryStatus.SENT,
    "email.delivered": DeliveryStatus.DELIVERED,
    "email.opened": DeliveryStatus.READ,
    "email.clicked": DeliveryStatus.READ,
    "email.bounced": DeliveryStatus.FAILED,
    "email.complained": DeliveryStatus.FAILED,
}


def parse_delivery_status(value: str | None) -> DeliveryStatus:
    """Read a stored column value; unknown or empty values count as pending."""
    try:
        return DeliveryStatus(value or DeliveryStatus.PENDING.value)
    except ValueError:
        return DeliveryStatus.PENDING


def should_advance(current: DeliveryStatus, incoming: DeliveryStatus) -> bool:
    """True when `incoming` must replace `current`."""
    if current == DeliveryStatus.FAILED:
        return False
    if incoming == DeliveryStatus.FAILED:
        return True
    return DELIVERY_RANK[incoming] > DELIVERY_RANK[current]


def resolve_delivery_status(
    current: DeliveryStatus, incoming: DeliveryStatus,
) -> DeliveryStatus:
    """Status after applying `incoming` to `current`."""
    return incoming if should_advance(current, incoming) else current


def predecessors_of(incoming: DeliveryStatus) -> frozenset[DeliveryStatus]:
    """Every current status that `incoming` may overwrite."""
    return frozenset(
        status for status in DeliveryStatus
        if should_advance(status, incoming)
    )


def map_whatsapp_status(value: str | None) -> DeliveryStatus | None:
    """Map a Cloud API status string; None for statuses we do not track."""
    if not value:
        return None
    return _WHATSAPP_STATUSES.get(value.lower())


def map_email_event(event_type: str | None) -> DeliveryStatus | None:
    """Map a Resend webhook event type; None for informational events."""
    if not event_type:
        return None
    return _EMAIL_EVENTS.get(event_type)
