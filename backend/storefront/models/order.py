"""Order ORM — aggregate root of the fulfillment pipeline.

Invariants:
    - order_number is unique and comes from an OrderNumberTicket row
    - total_amount_minor is an integer amount in minor units (paise)
    - status transitions: pending -> paid | failed (refunded set outside this service)
    - delivery_status (WhatsApp) and email_delivery_status (email) each move
      forward along core/delivery_lattice.py, independently of each other
    - Items and download tokens are owned by the order (cascade delete)

Design Decisions:
    - customer_phone_normalized stored at creation: webhook matching compares digits
      without re-normalizing every row
    - Provider message ids stored per channel: status callbacks correlate by id first,
      falling back to phone matching only when the id is unknown
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from storefront.db.base import Base


class Order(Base):
    """A customer purchase and its payment / delivery state."""
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_phone_created", "customer_phone_normalized", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    order_number: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True,
    )
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_phone_normalized: Mapped[str] = mapped_column(
        String(20), nullable=False,
    )
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    total_amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="INR",
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    delivery_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    email_delivery_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    delivery_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    last_delivery_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    whatsapp_message_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True,
    )
    email_message_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True,
    )
    whatsapp_optin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    gateway_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    gateway_payment_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True,
    )
    gateway_signature: Mapped[str | None] = mapped_column(
        String(128), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    items: Mapped[list["OrderItem"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", lazy="selectin",
    )
    download_tokens: Mapped[list["DownloadToken"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "DownloadToken", back_populates="order",
        cascade="all, delete-orphan", lazy="selectin",
    )
