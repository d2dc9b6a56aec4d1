"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - OrderId, ProductId, TokenId wrap UUIDs — never use bare UUID in domain logic
    - MinorUnits is an integer amount in the currency's smallest unit (paise for INR)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare against DB string columns directly
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

OrderId = NewType("OrderId", UUID)
ProductId = NewType("ProductId", UUID)
TokenId = NewType("TokenId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

MinorUnits = NewType("MinorUnits", int)


# ─── Enums ───────────────────────────────────────────────────────

class OrderStatus(str, Enum):
    """Order lifecycle — maps to DB `status` column. Only pending→paid|failed is legal."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryStatus(str, Enum):
    """Delivery lifecycle — maps to DB `delivery_status` column (see delivery_lattice)."""
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class DeliveryChannel(str, Enum):
    """Outbound notification channels."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"
