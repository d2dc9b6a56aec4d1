"""Setting ORM — operator-editable key/value configuration.

Invariants:
    - key is the primary key; value may be null (treated as unset)
    - Read once per request by the settings resolver; never cached across requests
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base


class Setting(Base):
    """Operator setting row (gateway keys, test-mode flag, webhook tokens)."""
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
