"""Admin Schemas — maintenance operations."""

from pydantic import BaseModel, Field

from storefront.services.order_purge import MAX_PURGE_RECORDS


class PurgeRequest(BaseModel):
    record_count: int = Field(ge=1, le=MAX_PURGE_RECORDS)


class PurgeResponse(BaseModel):
    success: bool = True
    deleted_count: int
    backup_csv: str
