"""Product ORM — catalog entry referenced by cart lines and download tokens.

Invariants:
    - price_minor is the current catalog price in minor units
    - file_path is a storage key under FILE_STORAGE_ROOT, or a legacy http(s) URL
    - Inactive products cannot be purchased

Design Decisions:
    - Catalog maintenance lives in the admin UI; this service only reads products
      and bumps download_count
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from storefront.db.base import Base


class Product(Base):
    """Downloadable digital product."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    price_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    download_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
