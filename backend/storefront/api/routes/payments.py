"""Payment Routes — gateway callback verification and link delivery."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_store_config
from storefront.infrastructure.database import get_db
from storefront.schemas.order import (
    DeliverySummary,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.services.checkout import CheckoutService
from storefront.services.settings_resolver import StoreConfig

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    """Verify the checkout signature, issue tokens and send download links."""
    result = await CheckoutService(db, config).confirm_payment(
        body.order_id, body.payment_id, body.gateway_order_id, body.signature,
    )
    confirmation = result.confirmation
    return VerifyPaymentResponse(
        order_id=confirmation.order_id,
        order_number=confirmation.order_number,
        status=confirmation.status,
        already_verified=confirmation.already_verified,
        tokens_issued=len(confirmation.tokens),
        deliveries=[
            DeliverySummary(
                channel=channel,
                success=delivery.success,
                simulated=delivery.simulated,
                disabled=delivery.disabled,
                error=delivery.error,
            )
            for channel, delivery in result.deliveries.items()
        ],
    )
