import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from product_genius.api.deps import require_admin
from product_genius.core.exceptions import TranslationError
from product_genius.core.rate_limiter import limiter
from product_genius.models.user import User
from product_genius.schemas.translation import TranslationRequest
from product_genius.services import translation_service
from product_genius.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "",
    summary="Translate text",
    description="""
Translates `text` from `source_language` into each of `target_languages`.

Languages that fail are left out of the result; the call only fails when
no language could be translated.
""",
    responses={
        400: {"description": "Empty text or no target languages"},
        502: {"description": "All translations failed"},
        503: {"description": "Translation service not configured"},
    },
)
@limiter.limit("30/minute")
async def translate(
    request: Request,
    payload: TranslationRequest,
    admin: User = Depends(require_admin),
):
    try:
        translations = await translation_service.translate_text(
            payload.text,
            payload.target_languages,
            payload.source_language,
        )
    except TranslationError as exc:
        logger.error("translation_request_failed", admin_user_id=admin.id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="All translations failed",
        ) from exc

    return success(data=translations, message="Translation completed")
