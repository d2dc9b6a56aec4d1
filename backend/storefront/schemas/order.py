"""Order Schemas — checkout and payment contracts.

Invariants:
    - CreateOrderRequest: 1-100 cart items, email and phone non-blank after strip,
      phone carries 8-15 digits
    - Prices are Decimal major units with at most 2 decimal places, >= 0
    - Responses never carry payment signatures or download token values

Design Decisions:
    - Cart item keeps the storefront client's {product: {id, name, price}} shape
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from storefront.core.phone_numbers import MAX_PHONE_DIGITS, MIN_PHONE_DIGITS, is_valid_phone


class CartProduct(BaseModel):
    id: UUID
    name: str = Field(min_length=1, max_length=300)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)


class CartItem(BaseModel):
    product: CartProduct


class CreateOrderRequest(BaseModel):
    """Checkout request — validates contact fields before any write."""
    items: list[CartItem] = Field(min_length=1, max_length=100)
    customer_email: str = Field(max_length=320)
    customer_phone: str = Field(max_length=32)
    customer_name: str | None = Field(None, max_length=200)
    whatsapp_optin: bool = False

    @field_validator("customer_email", "customer_phone")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty or whitespace")
        return v

    @field_validator("customer_email")
    @classmethod
    def looks_like_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("invalid email address")
        return v

    @field_validator("customer_phone")
    @classmethod
    def plausible_phone(cls, v: str) -> str:
        if not is_valid_phone(v):
            raise ValueError(
                f"phone must contain {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits",
            )
        return v


class CreateOrderResponse(BaseModel):
    order_id: UUID
    order_number: str
    gateway_order_id: str
    amount_minor_units: int
    total_amount: Decimal
    currency: str
    gateway_public_key: str


class VerifyPaymentRequest(BaseModel):
    order_id: UUID
    payment_id: str = Field(min_length=1, max_length=64)
    gateway_order_id: str = Field(min_length=1, max_length=64)
    signature: str | None = Field(None, max_length=128)


class DeliverySummary(BaseModel):
    channel: str
    success: bool
    simulated: bool = False
    disabled: bool = False
    error: str | None = None


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    order_id: UUID
    order_number: str
    status: str
    already_verified: bool
    tokens_issued: int
    deliveries: list[DeliverySummary] = []


class OrderItemResponse(BaseModel):
    product_id: UUID | None
    product_name: str
    price: Decimal


class DownloadTokenInfo(BaseModel):
    """Token metadata only — the token value itself is never echoed."""
    product_id: UUID
    product_name: str | None
    expires_at: datetime
    downloads_used: int
    max_downloads: int


class OrderSummaryResponse(BaseModel):
    order_id: UUID
    order_number: str
    status: str
    delivery_status: str
    email_delivery_status: str
    total_amount: Decimal
    currency: str
    customer_name: str | None
    created_at: datetime
    paid_at: datetime | None
    items: list[OrderItemResponse]
    downloads: list[DownloadTokenInfo]
