"""Route Dependencies — per-request StoreConfig and admin-key guard."""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import AuthorizationError
from storefront.core.signatures import secrets_match
from storefront.infrastructure.database import get_db
from storefront.services.settings_resolver import StoreConfig, resolve_store_config


async def get_store_config(db: AsyncSession = Depends(get_db)) -> StoreConfig:
    """Settings table over environment, read once per request."""
    return await resolve_store_config(db)


async def require_admin_key(
    x_admin_key: str | None = Header(None),
    config: StoreConfig = Depends(get_store_config),
) -> None:
    """Unconfigured key locks the admin surface rather than opening it."""
    if not config.admin_api_key:
        raise AuthorizationError(
            "Admin access is not configured", "ADMIN_KEY_NOT_CONFIGURED",
        )
    if not secrets_match(x_admin_key, config.admin_api_key):
        raise AuthorizationError("Invalid admin key", "ADMIN_KEY_INVALID")
