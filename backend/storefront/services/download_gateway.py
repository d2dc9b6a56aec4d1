"""Download Gateway — redeems a download token for the purchased file.

Invariants:
    - The file is resolved before the counter moves: a missing file costs no download
    - The counter moves only through one compare-and-increment UPDATE guarded by
      download_count < max_downloads AND expires_at > now
    - N concurrent redeems of a token with k uses left: at most k succeed
    - Rejections distinguish unknown (404), expired (410) and exhausted (429)

Design Decisions:
    - Product.download_count is a statistic: bumped best-effort after the token update
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.download_policy import classify_rejection, downloads_remaining
from storefront.core.errors import (
    DownloadLimitError,
    ResourceNotFoundError,
    ValidationError,
)
from storefront.infrastructure.file_storage import ProductFileStore, StoredFile
from storefront.infrastructure.observability import token_prefix
from storefront.models.download_token import DownloadToken
from storefront.models.product import Product
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redemption:
    file: StoredFile
    downloads_remaining: int


class DownloadGateway:
    """Counts and serves token-guarded downloads."""

    def __init__(
        self, db: AsyncSession, config: StoreConfig,
        file_store: ProductFileStore | None = None,
    ):
        self.db = db
        self.config = config
        self.file_store = file_store or ProductFileStore(config.file_storage_root)

    async def redeem(self, token: str | None) -> Redemption:
        token = (token or "").strip()
        if not token:
            raise ValidationError("Download token is required", "token")

        row = await self._find(token)
        if row is None or not hmac.compare_digest(row.token, token):
            logger.info(
                "Unknown download token",
                extra={"token_prefix": token_prefix(token)},
            )
            raise ResourceNotFoundError("Download link", token_prefix(token))

        product = await self.db.get(Product, row.product_id)
        if product is None:
            raise ResourceNotFoundError("Product", str(row.product_id))
        stored = self.file_store.resolve(
            product.file_path, product.name, product.content_type,
        )

        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(DownloadToken)
            .where(DownloadToken.id == row.id)
            .where(DownloadToken.download_count < DownloadToken.max_downloads)
            .where(DownloadToken.expires_at > now)
            .values(
                download_count=DownloadToken.download_count + 1,
                last_downloaded_at=now,
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()

        await self.db.refresh(row)
        if result.rowcount != 1:
            logger.info(
                "Download rejected",
                extra={"order_id": row.order_id,
                       "token_prefix": token_prefix(token)},
            )
            classify_rejection(
                row.expires_at, row.download_count, row.max_downloads, now,
            )
            # Limit raised between update and reload
            raise DownloadLimitError(row.download_count, row.max_downloads)

        remaining = downloads_remaining(row.download_count, row.max_downloads)
        order_id = row.order_id
        await self._bump_product_counter(product.id)
        logger.info(
            f"Download served, {remaining} remaining",
            extra={"order_id": order_id,
                   "token_prefix": token_prefix(token)},
        )
        return Redemption(file=stored, downloads_remaining=remaining)

    async def _find(self, token: str) -> DownloadToken | None:
        result = await self.db.execute(
            select(DownloadToken)
            .where(DownloadToken.token == token)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _bump_product_counter(self, product_id) -> None:
        try:
            await self.db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(download_count=Product.download_count + 1)
                .execution_options(synchronize_session=False),
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(
                f"Product download counter not updated: {e}",
                extra={"error_code": "PRODUCT_COUNTER"},
            )
