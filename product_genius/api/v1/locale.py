from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from product_genius.core.config import settings
from product_genius.schemas.locale import LocaleUpdate
from product_genius.utils.i18n import LOCALE_COOKIE_NAME, normalize_locale, resolve_locale
from product_genius.utils.response import success

router = APIRouter()

LOCALE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


@router.get("/locales")
def list_locales(request: Request):
    return success(
        data={
            "locales": settings.SUPPORTED_LOCALES,
            "default": settings.DEFAULT_LOCALE,
            "current": resolve_locale(request),
        },
        message="Locales retrieved",
    )


@router.post("/locale")
def set_locale(payload: LocaleUpdate):
    locale = normalize_locale(payload.locale)
    if not locale:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported locale: {payload.locale}",
        )

    response = JSONResponse(content=success(data={"locale": locale}, message="Locale updated"))
    response.set_cookie(
        key=LOCALE_COOKIE_NAME,
        value=locale,
        httponly=False,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=LOCALE_COOKIE_MAX_AGE,
        path="/",
    )
    return response
