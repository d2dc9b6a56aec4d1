"""Webhook Routes — WhatsApp Cloud API and Resend delivery callbacks.

Invariants:
    - WhatsApp GET handshake: 200 + literal challenge, or 403 "Forbidden"
    - WhatsApp POST always answers 200 "OK": a non-2xx makes Meta retry the
      delivery, and a payload we cannot use will not get better on retry
    - Email POST answers 401 on a bad signature, 200 for everything after it

Design Decisions:
    - Raw body read before JSON parsing: the Svix signature covers the exact bytes
"""

import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_store_config
from storefront.core.errors import AuthorizationError, StorefrontError
from storefront.infrastructure.database import get_db
from storefront.services.delivery_reconciler import DeliveryReconciler
from storefront.services.settings_resolver import StoreConfig

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_handshake(
    mode: str | None = Query(None, alias="hub.mode"),
    verify_token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    try:
        echoed = DeliveryReconciler(db, config).verify_handshake(
            mode, verify_token, challenge,
        )
    except AuthorizationError:
        return PlainTextResponse("Forbidden", status_code=403)
    return PlainTextResponse(echoed, status_code=200)


@router.post("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_status(
    request: Request,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    try:
        body = json.loads(await request.body() or b"null")
        summary = await DeliveryReconciler(db, config).handle_whatsapp(body)
        logger.info(
            f"WhatsApp webhook: {summary.applied} applied, {summary.skipped} skipped, "
            f"{summary.unmatched} unmatched, {summary.failed} failed",
            extra={"provider": "whatsapp"},
        )
    except ValueError as e:
        logger.warning(
            f"WhatsApp webhook body is not JSON: {e}", extra={"provider": "whatsapp"},
        )
    except (StorefrontError, SQLAlchemyError) as e:
        await db.rollback()
        logger.error(
            f"WhatsApp webhook processing failed: {e}",
            extra={"provider": "whatsapp"}, exc_info=True,
        )
    return PlainTextResponse("OK", status_code=200)


@router.post("/email")
async def email_status(
    request: Request,
    db: AsyncSession = Depends(get_db),
    config: StoreConfig = Depends(get_store_config),
):
    reconciler = DeliveryReconciler(db, config)
    payload = await request.body()
    reconciler.verify_email_signature(payload, dict(request.headers))

    try:
        summary = await reconciler.handle_email(json.loads(payload or b"null"))
        logger.info(
            f"Email webhook: {summary.applied} applied, {summary.unmatched} unmatched",
            extra={"provider": "resend"},
        )
    except ValueError as e:
        logger.warning(
            f"Email webhook body is not JSON: {e}", extra={"provider": "resend"},
        )
    except (StorefrontError, SQLAlchemyError) as e:
        await db.rollback()
        logger.error(
            f"Email webhook processing failed: {e}",
            extra={"provider": "resend"}, exc_info=True,
        )
    return {"received": True}
