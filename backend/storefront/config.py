"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables or the `settings` table (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Env values are the fallback layer; per-request overrides live in the settings
      table and are merged by services/settings_resolver.py

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Provider secrets default to empty: an unconfigured deployment fails closed
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://store:store@db:5432/store"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Store
    store_name: str = "Digital Store"
    public_base_url: str = "http://localhost:8000"
    currency: str = "INR"
    default_country_code: str = "91"
    file_storage_root: str = "./product-files"

    # Download links
    download_ttl_days: int = 7
    max_downloads: int = 3

    # Upper bound on orders matched by phone suffix
    reconcile_candidate_limit: int = 5

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_test_mode: bool = False
    razorpay_api_base: str = "https://api.razorpay.com/v1"

    # WhatsApp Cloud API
    whatsapp_access_token: str = ""
    whatsapp_phone_number_id: str = ""
    whatsapp_enabled: bool = True
    whatsapp_webhook_verify_token: str = ""
    whatsapp_api_base: str = "https://graph.facebook.com/v18.0"

    # Email (Resend)
    resend_api_key: str = ""
    resend_webhook_secret: str = ""
    resend_api_base: str = "https://api.resend.com"
    email_from: str = "Digital Store <downloads@example.com>"

    # Admin
    admin_api_key: str = ""

    # Outbound HTTP
    provider_timeout_seconds: float = 15.0

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
