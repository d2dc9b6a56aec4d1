"""OrderNumberTicket ORM — database-side sequence behind human order numbers.

Invariants:
    - One row per issued order number; id is assigned by the database
    - Never updated or deleted by the pipeline (gaps are fine, reuse is not)

Design Decisions:
    - Autoincrement table over a PostgreSQL SEQUENCE: same atomicity, and it also
      works on SQLite in tests (ADR: portable schema)
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base


class OrderNumberTicket(Base):
    """Sequence source for order numbers."""
    __tablename__ = "order_number_tickets"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
