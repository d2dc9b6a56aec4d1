"""Order Routes — checkout order creation and order lookup.

Invariants:
    - Cart prices converted to minor units at the boundary (Decimal, ROUND_HALF_UP)
    - Lookup responses expose token metadata only, never token values or signatures
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_store_config
from storefront.core.checkout_rules import CartLine
from storefront.core.money import from_minor_units, to_minor_units
from storefront.infrastructure.database import get_db
from storefront.schemas.order import (
    CreateOrderRequest,
    CreateOrderResponse,
    DownloadTokenInfo,
    OrderItemResponse,
    OrderSummaryResponse,
)
from storefront.services.order_ledger import OrderLedger
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post(
    "", response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    body: CreateOrderRequest,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    """Create a pending order and its gateway order."""
    lines = [
        CartLine(
            product_id=item.product.id,
            product_name=item.product.name,
            price_minor=to_minor_units(item.product.price),
        )
        for item in body.items
    ]
    created = await OrderLedger(db, config).create_order(
        lines,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        customer_name=body.customer_name,
        whatsapp_optin=body.whatsapp_optin,
    )
    return CreateOrderResponse(
        order_id=created.order_id,
        order_number=created.order_number,
        gateway_order_id=created.gateway_order_id,
        amount_minor_units=created.amount_minor,
        total_amount=from_minor_units(created.amount_minor),
        currency=created.currency,
        gateway_public_key=created.gateway_public_key,
    )


@router.get("/{order_number}", response_model=OrderSummaryResponse)
async def get_order(
    order_number: str,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    """Order summary for the order-success page."""
    order = await OrderLedger(db, config).find_by_number(order_number)
    names = {item.product_id: item.product_name for item in order.items}
    return OrderSummaryResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        delivery_status=order.delivery_status,
        email_delivery_status=order.email_delivery_status,
        total_amount=from_minor_units(order.total_amount_minor),
        currency=order.currency,
        customer_name=order.customer_name,
        created_at=order.created_at,
        paid_at=order.paid_at,
        items=[
            OrderItemResponse(
                product_id=item.product_id,
                product_name=item.product_name,
                price=from_minor_units(item.product_price_minor),
            )
            for item in order.items
        ],
        downloads=[
            DownloadTokenInfo(
                product_id=token.product_id,
                product_name=names.get(token.product_id),
                expires_at=token.expires_at,
                downloads_used=token.download_count,
                max_downloads=token.max_downloads,
            )
            for token in order.download_tokens
        ],
    )
