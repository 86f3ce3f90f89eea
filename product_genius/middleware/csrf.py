import secrets

from fastapi import Request, Response

from product_genius.core.config import settings

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24
CSRF_PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Pre-session endpoints: callers cannot have fetched a token yet.
CSRF_EXEMPT_PATHS = frozenset(
    f"{settings.API_V1_STR}{path}"
    for path in (
        "/auth/login",
        "/auth/refresh",
        "/auth/logout",
        "/auth/forgot-password",
        "/auth/reset-password",
        "/users/temp",
    )
)


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def set_csrf_cookie(response: Response, token: str) -> None:
    # Readable by the frontend so it can echo the value in the header.
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def verify_csrf_token(request: Request) -> bool:
    cookie_value = request.cookies.get(CSRF_COOKIE_NAME)
    header_value = request.headers.get(CSRF_HEADER_NAME)
    return bool(cookie_value and header_value) and secrets.compare_digest(cookie_value, header_value)


def requires_csrf_check(request: Request) -> bool:
    if settings.ENVIRONMENT != "production" or request.method not in CSRF_PROTECTED_METHODS:
        return False
    return (request.url.path.rstrip("/") or "/") not in CSRF_EXEMPT_PATHS
