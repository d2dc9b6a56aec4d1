"""OrderItem ORM — a purchased line, frozen at checkout time.

Invariants:
    - Always belongs to exactly one Order (order_id FK, cascade delete)
    - product_name / product_price_minor are point-in-time snapshots, immune to
      later catalog changes
    - quantity is always 1 in this store

Design Decisions:
    - product_id nullable with SET NULL: deleting a catalog product must not destroy
      purchase history
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from storefront.db.base import Base


class OrderItem(Base):
    """One product line of an order."""
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)
    product_price_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    order: Mapped["Order"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Order", back_populates="items",
    )
