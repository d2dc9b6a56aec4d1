"""Notification Routes — admin (re)send of download links per channel."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_store_config, require_admin_key
from storefront.infrastructure.database import get_db
from storefront.schemas.notification import (
    EmailNotificationRequest,
    NotificationResponse,
    WhatsAppNotificationRequest,
)
from storefront.services.notification_dispatcher import (
    DispatchResult,
    NotificationDispatcher,
    ProductDownload,
)
from storefront.services.settings_resolver import StoreConfig

router = APIRouter(
    prefix="/api/v1/notifications", tags=["notifications"],
    dependencies=[Depends(require_admin_key)],
)


def _to_response(result: DispatchResult) -> NotificationResponse:
    return NotificationResponse(
        success=result.success,
        channel=result.channel.value,
        simulated=result.simulated,
        disabled=result.disabled,
        message_id=result.message_id,
        preview=result.preview,
    )


@router.post("/whatsapp", response_model=NotificationResponse)
async def send_whatsapp(
    body: WhatsAppNotificationRequest,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    result = await NotificationDispatcher(db, config).send_whatsapp(
        body.order_id, body.customer_phone, body.customer_name,
        [ProductDownload(p.name, p.token) for p in body.products],
    )
    return _to_response(result)


@router.post("/email", response_model=NotificationResponse)
async def send_email(
    body: EmailNotificationRequest,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    result = await NotificationDispatcher(db, config).send_email(
        body.order_id, body.customer_email, body.customer_name,
        [ProductDownload(p.name, p.token) for p in body.products],
    )
    return _to_response(result)
