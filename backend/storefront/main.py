"""Storefront Fulfillment API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map StorefrontError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.error_handlers import register_error_handlers
from storefront.api.routes import (
    admin, downloads, health, notifications, orders, payments, webhooks,
)
from storefront.config import get_settings
from storefront.infrastructure import database
from storefront.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Storefront API started")
    yield
    logger.info("Storefront API shutting down")
    if database.db_manager:
        await database.db_manager.dispose()


app = FastAPI(
    title="Storefront Fulfillment API", version="1.0.0", lifespan=lifespan,
)

# CORS origins from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(downloads.router)
app.include_router(notifications.router)
app.include_router(webhooks.router)
app.include_router(admin.router)

register_error_handlers(app)
