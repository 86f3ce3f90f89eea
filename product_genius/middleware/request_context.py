import time
import uuid

import structlog
from fastapi import FastAPI, Request, status

from product_genius.core.config import settings
from product_genius.middleware.csrf import requires_csrf_check, verify_csrf_token
from product_genius.utils.response import standardized_error_response

logger = structlog.get_logger()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains"


async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    if settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = HSTS_HEADER
    return response


async def request_context(request: Request, call_next):
    """Bind correlation/request ids for the request's log lines and echo them back."""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request_id = str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    request.state.request_id = request_id

    structlog.contextvars.bind_contextvars(correlation_id=correlation_id, request_id=request_id)
    started = time.time()
    try:
        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        response = await call_next(request)
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id", "request_id")

    response.headers["X-Process-Time"] = str(time.time() - started)
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Request-ID"] = request_id
    return response


async def csrf_protection(request: Request, call_next):
    """Double-submit cookie check; only active in production."""
    if requires_csrf_check(request) and not verify_csrf_token(request):
        logger.warning("csrf_rejected", method=request.method, path=request.url.path)
        return standardized_error_response(
            status.HTTP_403_FORBIDDEN,
            "CSRF validation failed",
        )
    return await call_next(request)


def register_http_middleware(app: FastAPI) -> None:
    # Registered last runs first: CSRF rejections still get ids and headers.
    app.middleware("http")(csrf_protection)
    app.middleware("http")(security_headers)
    app.middleware("http")(request_context)
