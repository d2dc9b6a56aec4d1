"""Admin Routes — maintenance operations guarded by X-Admin-Key."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import require_admin_key
from storefront.infrastructure.database import get_db
from storefront.schemas.admin import PurgeRequest, PurgeResponse
from storefront.services.order_purge import OrderPurger

router = APIRouter(
    prefix="/api/v1/admin", tags=["admin"],
    dependencies=[Depends(require_admin_key)],
)


@router.post("/purge", response_model=PurgeResponse)
async def purge_orders(
    body: PurgeRequest, db: AsyncSession = Depends(get_db),
):
    """Delete the oldest orders and return them as CSV."""
    result = await OrderPurger(db).purge_oldest(body.record_count)
    return PurgeResponse(
        deleted_count=result.deleted_count, backup_csv=result.backup_csv,
    )
