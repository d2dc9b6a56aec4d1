"""Order Purge — admin removal of the oldest orders with a CSV backup.

Invariants:
    - 1 <= record_count <= MAX_PURGE_RECORDS
    - Orders, their items and their download tokens go in one transaction
    - The CSV returned holds exactly the deleted orders, oldest first
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import ValidationError
from storefront.core.order_export import EXPORT_COLUMNS, orders_to_csv
from storefront.models.order import Order

logger = logging.getLogger(__name__)

MAX_PURGE_RECORDS = 1000


@dataclass(frozen=True)
class PurgeResult:
    deleted_count: int
    backup_csv: str


class OrderPurger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def purge_oldest(self, record_count: int) -> PurgeResult:
        if not 1 <= record_count <= MAX_PURGE_RECORDS:
            raise ValidationError(
                f"record_count must be between 1 and {MAX_PURGE_RECORDS}",
                "record_count",
            )
        result = await self.db.execute(
            select(Order)
            .order_by(Order.created_at.asc(), Order.order_number.asc())
            .limit(record_count)
            .execution_options(populate_existing=True),
        )
        orders = list(result.scalars().all())
        rows = [
            {column: getattr(order, column) for column in EXPORT_COLUMNS}
            for order in orders
        ]
        backup = orders_to_csv(rows)

        try:
            for order in orders:
                await self.db.delete(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error("Order purge rolled back", exc_info=True)
            raise

        logger.info(f"Purged {len(orders)} order(s)")
        return PurgeResult(deleted_count=len(orders), backup_csv=backup)
