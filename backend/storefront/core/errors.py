"""Error Hierarchy — typed, categorized exceptions for every storefront failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) carry a specific message for the caller
    - Upstream errors keep provider detail in `detail` (logs only); `message` stays generic
    - to_response() produces the REST envelope used by every route

Design Decisions:
    - Single hierarchy with StorefrontError base: FastAPI global handler catches all (ADR: uniform error shape)
    - Download failures use distinct codes and statuses (404 / 410 / 429) so the
      customer can tell "not found" from "expired" from "limit reached"
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    QUOTA = "quota"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    order_id: str | None = None
    order_number: str | None = None
    provider: str | None = None
    details: dict[str, Any] | None = None


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
        }
        if self.context.details:
            body["details"] = self.context.details
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(StorefrontError):
    """Required field missing/blank or request inconsistent — rejected before any write."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(StorefrontError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class AuthorizationError(StorefrontError):
    """Signature mismatch, bad verify token, or missing admin credentials."""
    def __init__(
        self, message: str, code: str = "AUTHORIZATION_FAILED",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class WebhookSignatureError(StorefrontError):
    """Inbound webhook carries a missing or invalid signature."""
    def __init__(self, provider: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.provider = provider
        super().__init__(
            "Invalid webhook signature", "WEBHOOK_SIGNATURE_INVALID",
            ErrorCategory.AUTHORIZATION, ErrorSeverity.WARNING, ctx, 401,
        )


class ConflictError(StorefrontError):
    """Order is in a state that does not allow the requested transition."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "ORDER_STATE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class TokenExpiredError(StorefrontError):
    """Download token is past its expiry."""
    def __init__(self, expires_at: datetime, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.details = {"expired_at": expires_at.isoformat()}
        super().__init__(
            "Download link has expired", "DOWNLOAD_EXPIRED",
            ErrorCategory.EXPIRED, ErrorSeverity.INFO, ctx, 410,
        )


class DownloadLimitError(StorefrontError):
    """Download token has no uses left."""
    def __init__(
        self, downloads_used: int, max_downloads: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.details = {
            "downloads_used": downloads_used,
            "max_downloads": max_downloads,
        }
        super().__init__(
            "Maximum download limit reached", "DOWNLOAD_LIMIT_REACHED",
            ErrorCategory.QUOTA, ErrorSeverity.INFO, ctx, 429,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ConfigurationError(StorefrontError):
    """A required secret or setting is missing for the requested operation."""
    def __init__(self, setting: str, context: ErrorContext | None = None):
        super().__init__(
            "Store is not configured to complete this request",
            "CONFIGURATION_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting


class DatabaseError(StorefrontError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class UpstreamError(StorefrontError):
    """Third-party provider call failed. `detail` is for logs, never for the caller."""
    def __init__(
        self,
        message: str,
        code: str,
        provider: str,
        detail: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.provider = provider
        super().__init__(
            message, code, ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 502,
        )
        self.provider = provider
        self.detail = detail


class PaymentGatewayError(UpstreamError):
    """Razorpay call failed."""
    def __init__(self, detail: str, context: ErrorContext | None = None):
        super().__init__(
            "Payment provider is unavailable, please retry",
            "PAYMENT_GATEWAY_ERROR", "razorpay", detail, context,
        )


class MessagingProviderError(UpstreamError):
    """WhatsApp or email provider call failed."""
    def __init__(self, provider: str, detail: str, context: ErrorContext | None = None):
        super().__init__(
            "Could not deliver the notification, please retry",
            "MESSAGING_PROVIDER_ERROR", provider, detail, context,
        )
