"""Notification Schemas — admin-triggered (re)delivery of download links."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from storefront.core.phone_numbers import MAX_PHONE_DIGITS, MIN_PHONE_DIGITS, is_valid_phone


class NotificationProduct(BaseModel):
    name: str = Field(min_length=1, max_length=300)
    token: str = Field(min_length=1, max_length=64)


class _NotificationBase(BaseModel):
    order_id: UUID
    customer_name: str | None = Field(None, max_length=200)
    products: list[NotificationProduct] = Field(min_length=1, max_length=100)


class WhatsAppNotificationRequest(_NotificationBase):
    customer_phone: str = Field(max_length=32)

    @field_validator("customer_phone")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customer_phone cannot be empty")
        if not is_valid_phone(v):
            raise ValueError(
                f"phone must contain {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits",
            )
        return v


class EmailNotificationRequest(_NotificationBase):
    customer_email: str = Field(max_length=320)

    @field_validator("customer_email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("invalid email address")
        return v


class NotificationResponse(BaseModel):
    success: bool
    channel: str
    simulated: bool = False
    disabled: bool = False
    message_id: str | None = None
    preview: dict | None = None
