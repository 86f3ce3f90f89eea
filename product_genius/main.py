import logging

import sentry_sdk
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi.middleware import SlowAPIMiddleware

from product_genius import __version__
from product_genius.api.v1 import (
    auth,
    categories,
    health,
    locale,
    media,
    plans,
    products,
    suppliers,
    translations,
    users,
)
from product_genius.core.config import settings
from product_genius.core.error_handlers import register_exception_handlers
from product_genius.core.logging_config import configure_logging
from product_genius.core.rate_limiter import limiter
from product_genius.db.session import SessionLocal
from product_genius.middleware.request_context import register_http_middleware
from product_genius.models.user import STAFF_ROLES, User

# --------------------------------------------------
# LOGGING (FIRST) & SENTRY (PRODUCTION ONLY)
# --------------------------------------------------
configure_logging()
logger = structlog.get_logger()

if settings.ENVIRONMENT == "production" and settings.SENTRY_DSN:
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            release=f"product-genius@{__version__}",
            traces_sample_rate=0.1,
            integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        )
        logging.info("Sentry initialized successfully")
    except Exception as e:
        # The API keeps serving without error reporting.
        logging.warning(f"Failed to initialize Sentry: {e}")

# --------------------------------------------------
# APP
# --------------------------------------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


@app.on_event("startup")
def validate_production_admin_bootstrap():
    """Refuse to start in production without an active owner or admin."""
    if settings.ENVIRONMENT != "production":
        return

    db = SessionLocal()
    try:
        staff = (
            db.query(User.id)
            .filter(User.role.in_(STAFF_ROLES), User.is_active == True)
            .first()
        )
    finally:
        db.close()

    if staff is None:
        raise RuntimeError(
            "No active owner or admin user found in production. "
            "Run `python -m product_genius.db.init_db` before starting the API."
        )


# --------------------------------------------------
# MIDDLEWARE
# --------------------------------------------------
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Cookies need an exact origin match, so the frontend is always allowed.
cors_origins = list(dict.fromkeys([*settings.BACKEND_CORS_ORIGINS, settings.FRONTEND_URL]))
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in cors_origins if origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-CSRF-Token",
        "X-Correlation-ID",
        "X-Requested-With",
    ],
    expose_headers=["X-Process-Time", "X-Correlation-ID", "X-Request-ID"],
    max_age=3600,
)

if settings.ENVIRONMENT == "production":
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

register_http_middleware(app)
register_exception_handlers(app)

# --------------------------------------------------
# ROUTERS
# --------------------------------------------------
API_ROUTERS = (
    (auth.router, "/auth", "Authentication"),
    (users.router, "/users", "Users"),
    (categories.router, "/categories", "Categories"),
    (products.router, "/products", "Products"),
    (suppliers.router, "/suppliers", "Suppliers"),
    (media.router, "/media", "Media"),
    (translations.router, "/translations", "Translations"),
    (plans.router, "/plans", "Plans"),
    (locale.router, "", "Localization"),
)

for router, prefix, tag in API_ROUTERS:
    app.include_router(router, prefix=f"{settings.API_V1_STR}{prefix}", tags=[tag])

app.include_router(health.router, tags=["Health"])
