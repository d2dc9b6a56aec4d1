"""Token Issuer — one download token per purchased product of a paid order.

Invariants:
    - Idempotent: existing (order_id, product_id) tokens are returned, never duplicated
    - Items whose product was deleted (product_id NULL) get no token
    - A concurrent issuer losing the unique-constraint race re-reads the winner's rows
    - Storage failures are logged and degrade to "whatever tokens already exist"

Design Decisions:
    - Expiry and max_downloads frozen onto each token at issue time (StoreConfig policy)
    - Runs after the paid transition commits: a token failure never un-pays an order
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.download_policy import compute_expiry, new_download_token
from storefront.models.download_token import DownloadToken
from storefront.models.order_item import OrderItem
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchasedItem:
    product_id: UUID
    product_name: str


@dataclass(frozen=True)
class IssuedToken:
    product_id: UUID
    product_name: str
    token: str
    expires_at: datetime
    max_downloads: int


class TokenIssuer:
    """Creates the download tokens that delivery messages link to."""

    def __init__(self, db: AsyncSession, config: StoreConfig):
        self.db = db
        self.config = config

    async def issue_for_order(self, order_id: UUID) -> list[IssuedToken]:
        items = await self._purchased_items(order_id)
        if not items:
            logger.info(
                "No downloadable items on order", extra={"order_id": order_id},
            )
            return []

        existing = await self._existing_tokens(order_id)
        missing = [item for item in items if item.product_id not in existing]
        if missing:
            try:
                await self._insert_tokens(order_id, missing)
            except IntegrityError:
                await self.db.rollback()
                logger.info(
                    "Tokens issued concurrently, re-reading",
                    extra={"order_id": order_id},
                )
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(
                    f"Token issuance failed: {e}", extra={"order_id": order_id},
                )
            existing = await self._existing_tokens(order_id)

        issued = [
            IssuedToken(
                product_id=item.product_id,
                product_name=item.product_name,
                token=existing[item.product_id].token,
                expires_at=existing[item.product_id].expires_at,
                max_downloads=existing[item.product_id].max_downloads,
            )
            for item in items
            if item.product_id in existing
        ]
        logger.info(
            f"Order has {len(issued)}/{len(items)} download token(s)",
            extra={"order_id": order_id},
        )
        return issued

    async def _purchased_items(self, order_id: UUID) -> list[PurchasedItem]:
        # Plain values: a rollback below expires ORM instances
        result = await self.db.execute(
            select(OrderItem.product_id, OrderItem.product_name)
            .where(OrderItem.order_id == order_id)
            .where(OrderItem.product_id.is_not(None))
            .order_by(OrderItem.created_at, OrderItem.product_name),
        )
        seen: set[UUID] = set()
        unique = []
        for product_id, product_name in result.all():
            if product_id not in seen:
                seen.add(product_id)
                unique.append(PurchasedItem(product_id, product_name))
        return unique

    async def _existing_tokens(self, order_id: UUID) -> dict[UUID, DownloadToken]:
        result = await self.db.execute(
            select(DownloadToken).where(DownloadToken.order_id == order_id),
        )
        return {t.product_id: t for t in result.scalars().all()}

    async def _insert_tokens(self, order_id: UUID, items: list[PurchasedItem]) -> None:
        expires_at = compute_expiry(
            datetime.now(timezone.utc), self.config.download_ttl_days,
        )
        self.db.add_all([
            DownloadToken(
                order_id=order_id,
                product_id=item.product_id,
                token=new_download_token(),
                expires_at=expires_at,
                max_downloads=self.config.max_downloads,
            )
            for item in items
        ])
        await self.db.commit()
