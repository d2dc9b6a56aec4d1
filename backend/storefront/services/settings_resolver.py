"""Settings Resolver — merges operator settings (DB) over environment settings.

Invariants:
    - Resolution per key: non-empty `settings` row -> environment (Settings) -> default
    - Read once per request; the result is an immutable StoreConfig passed to services
    - A failing settings read degrades to environment-only values (logged, not raised)
    - Test mode is only ever on when explicitly configured as true

Design Decisions:
    - Explicit StoreConfig object over ambient lookups: every service receives its
      configuration at construction and is testable without a database
    - Dry-run detection lives here (sentinel credentials containing "dummy"/"test")
      so the dispatcher only asks a yes/no question
"""

import logging
from dataclasses import dataclass, fields, replace

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Settings, get_settings
from storefront.models.setting import Setting

logger = logging.getLogger(__name__)

# Keys operators may override from the admin settings screen
OVERRIDABLE_KEYS = frozenset({
    "razorpay_key_id",
    "razorpay_key_secret",
    "razorpay_test_mode",
    "whatsapp_access_token",
    "whatsapp_phone_number_id",
    "whatsapp_enabled",
    "whatsapp_webhook_verify_token",
    "resend_api_key",
    "resend_webhook_secret",
    "email_from",
    "admin_api_key",
})

_DRY_RUN_SENTINELS = ("dummy", "test")
_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


@dataclass(frozen=True)
class StoreConfig:
    """Resolved configuration for one request."""
    store_name: str
    public_base_url: str
    currency: str
    default_country_code: str
    file_storage_root: str
    download_ttl_days: int
    max_downloads: int
    reconcile_candidate_limit: int
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_test_mode: bool
    razorpay_api_base: str
    whatsapp_access_token: str
    whatsapp_phone_number_id: str
    whatsapp_enabled: bool
    whatsapp_webhook_verify_token: str
    whatsapp_api_base: str
    resend_api_key: str
    resend_webhook_secret: str
    resend_api_base: str
    email_from: str
    admin_api_key: str
    provider_timeout_seconds: float

    @property
    def whatsapp_dry_run(self) -> bool:
        return is_sentinel_credential(self.whatsapp_access_token)

    @property
    def email_dry_run(self) -> bool:
        return is_sentinel_credential(self.resend_api_key)


def is_sentinel_credential(value: str) -> bool:
    """Placeholder credentials switch a channel into dry-run (simulated) mode."""
    lowered = (value or "").lower()
    return any(marker in lowered for marker in _DRY_RUN_SENTINELS)


def _parse_bool(raw: str, fallback: bool) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.warning(f"Ignoring non-boolean setting value {raw!r}")
    return fallback


def build_store_config(
    settings: Settings, overrides: dict[str, str] | None = None,
) -> StoreConfig:
    """Combine env settings with DB overrides. Pure — no IO."""
    base = StoreConfig(**{
        f.name: getattr(settings, f.name) for f in fields(StoreConfig)
    })
    changes: dict[str, object] = {}
    for key, raw in (overrides or {}).items():
        if key not in OVERRIDABLE_KEYS or raw is None or not raw.strip():
            continue
        current = getattr(base, key)
        changes[key] = _parse_bool(raw, current) if isinstance(current, bool) else raw.strip()
    return replace(base, **changes)


async def load_setting_overrides(db: AsyncSession) -> dict[str, str]:
    """All non-null settings rows as a dict."""
    result = await db.execute(select(Setting.key, Setting.value))
    return {key: value for key, value in result.all() if value}


async def resolve_store_config(
    db: AsyncSession, settings: Settings | None = None,
) -> StoreConfig:
    """Per-request config: settings table over environment."""
    settings = settings or get_settings()
    try:
        overrides = await load_setting_overrides(db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Settings read failed, using environment only: {e}")
        overrides = {}
    return build_store_config(settings, overrides)
