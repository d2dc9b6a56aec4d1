"""Download Policy — token minting and usability rules for download links.

Invariants:
    - Tokens come from the `secrets` CSPRNG: 32 bytes (256 bits), URL-safe
    - expires_at = issued_at + ttl (default 7 days)
    - A token is usable iff now < expires_at AND download_count < max_downloads
    - classify_rejection is PURE: the shell calls it only after the atomic
      compare-and-increment matched zero rows

Design Decisions:
    - Expiry is checked before quota: an expired, exhausted link reports "expired"
      (the customer needs a new link either way, and expiry is the stronger signal)
    - as_utc() tolerates naive datetimes read back from SQLite
"""

import secrets
from datetime import datetime, timedelta, timezone

from storefront.core.errors import DownloadLimitError, TokenExpiredError

DEFAULT_TTL_DAYS = 7
DEFAULT_MAX_DOWNLOADS = 3
TOKEN_BYTES = 32


def new_download_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def compute_expiry(issued_at: datetime, ttl_days: int = DEFAULT_TTL_DAYS) -> datetime:
    return issued_at + timedelta(days=ttl_days)


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def is_usable(
    expires_at: datetime, download_count: int, max_downloads: int, now: datetime,
) -> bool:
    return as_utc(now) < as_utc(expires_at) and download_count < max_downloads


def classify_rejection(
    expires_at: datetime, download_count: int, max_downloads: int, now: datetime,
) -> None:
    """Raise the error explaining why a token cannot be used.

    Returns normally only if the token is in fact usable (caller lost a race
    against nothing, e.g. the row changed between update and reload).
    """
    if as_utc(now) >= as_utc(expires_at):
        raise TokenExpiredError(as_utc(expires_at))
    if download_count >= max_downloads:
        raise DownloadLimitError(download_count, max_downloads)


def downloads_remaining(download_count: int, max_downloads: int) -> int:
    return max(max_downloads - download_count, 0)
