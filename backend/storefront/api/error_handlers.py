"""Error Handlers — map exceptions to the storefront JSON error envelope.

Invariants:
    - StorefrontError -> its own http_status and to_response() body
    - UpstreamError provider detail goes to the log only; the caller sees the
      generic message
    - RequestValidationError -> 400 VALIDATION_ERROR with one entry per field
    - Anything else -> 500 INTERNAL_ERROR, no exception text in the body

Design Decisions:
    - Plain module-level handlers registered with add_exception_handler, so
      tests can call them directly
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.core.errors import ErrorSeverity, StorefrontError, UpstreamError

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str, category: str, severity: ErrorSeverity, **more) -> dict:
    return {"error": {
        "code": code, "message": message,
        "category": category, "severity": severity.value, **more,
    }}


async def handle_storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    ctx = exc.context
    extra = {
        "error_code": exc.code, "path": request.url.path,
        "order_id": ctx.order_id, "order_number": ctx.order_number,
        "provider": ctx.provider,
    }
    if isinstance(exc, UpstreamError):
        logger.error(f"{exc.provider} call failed: {exc.detail}", extra=extra)
    else:
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(f"{exc.code}: {exc.message}", extra=extra)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected request body: {[f['field'] for f in fields]}",
        extra={"path": request.url.path, "error_code": "VALIDATION_ERROR"},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data", "validation",
            ErrorSeverity.ERROR, details=fields,
        ),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        extra={"path": request.url.path, "error_code": "INTERNAL_ERROR"},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred", "internal",
            ErrorSeverity.CRITICAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, handle_storefront_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
