"""Product File Storage — resolves a product's file reference to something servable.

Invariants:
    - Local keys resolve strictly inside the storage root (no path traversal)
    - http(s) references are returned as redirects, never fetched by this service
    - A missing file raises ResourceNotFoundError before any download is counted

Design Decisions:
    - Local filesystem root from settings: container volume in production, tmp dir in tests
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path

from storefront.core.errors import ResourceNotFoundError


@dataclass(frozen=True)
class StoredFile:
    """Servable product file: either a local path or an external URL."""
    filename: str
    media_type: str
    path: Path | None = None
    redirect_url: str | None = None


class ProductFileStore:
    """Maps Product.file_path values onto the local storage root."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def resolve(
        self, file_ref: str | None, product_name: str,
        content_type: str | None = None,
    ) -> StoredFile:
        if not file_ref:
            raise ResourceNotFoundError("Product file", product_name)

        if file_ref.startswith(("http://", "https://")):
            return StoredFile(
                filename=product_name,
                media_type=content_type or "application/octet-stream",
                redirect_url=file_ref,
            )

        candidate = (self.root / file_ref.lstrip("/")).resolve()
        if not candidate.is_relative_to(self.root) or not candidate.is_file():
            raise ResourceNotFoundError("Product file", product_name)

        guessed, _ = mimetypes.guess_type(candidate.name)
        return StoredFile(
            filename=candidate.name,
            media_type=content_type or guessed or "application/octet-stream",
            path=candidate,
        )
