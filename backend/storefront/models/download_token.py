"""DownloadToken ORM — bounded, time-limited access to one purchased file.

Invariants:
    - Created only by the token issuer, right after an order is marked paid
    - Unique per (order_id, product_id): re-issuing never duplicates
    - download_count only increases, via a single conditional UPDATE in the gateway
    - Usable iff now < expires_at AND download_count < max_downloads

Design Decisions:
    - max_downloads stored per token: changing the store policy never alters links
      already sent to customers
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from storefront.db.base import Base


class DownloadToken(Base):
    """Opaque download credential for one product of one order."""
    __tablename__ = "download_tokens"
    __table_args__ = (
        UniqueConstraint(
            "order_id", "product_id", name="uq_download_tokens_order_product",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    download_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    max_downloads: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3,
    )
    last_downloaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    order: Mapped["Order"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Order", back_populates="download_tokens",
    )
    product: Mapped["Product"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Product", lazy="selectin",
    )
