"""Download Routes — token redemption.

Invariants:
    - Local files stream with Content-Disposition: attachment
    - External (legacy) file URLs answer 302 to the stored URL
    - X-Downloads-Remaining tells the client how many uses are left
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_store_config
from storefront.infrastructure.database import get_db
from storefront.services.download_gateway import DownloadGateway
from storefront.services.settings_resolver import StoreConfig

router = APIRouter(prefix="/api/v1/downloads", tags=["downloads"])


@router.get("")
async def download(
    token: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    """Redeem one use of a download token."""
    redemption = await DownloadGateway(db, config).redeem(token)
    headers = {"X-Downloads-Remaining": str(redemption.downloads_remaining)}
    stored = redemption.file
    if stored.redirect_url:
        return RedirectResponse(
            stored.redirect_url, status_code=status.HTTP_302_FOUND,
            headers=headers,
        )
    return FileResponse(
        stored.path, media_type=stored.media_type,
        filename=stored.filename, headers=headers,
    )
