import asyncio
from typing import Dict, List, Optional

import httpx
import structlog
from fastapi import HTTPException, status

from product_genius.core.config import settings
from product_genius.core.exceptions import TranslationError

logger = structlog.get_logger()


def _client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.DEEPL_TIMEOUT_SECONDS)


async def _translate_one(
    client: httpx.AsyncClient,
    text: str,
    source_language: str,
    target_language: str,
) -> Optional[str]:
    try:
        response = await client.post(
            settings.DEEPL_API_URL,
            headers={"Authorization": f"DeepL-Auth-Key {settings.DEEPL_API_KEY}"},
            data={
                "text": text,
                "source_lang": source_language.upper(),
                "target_lang": target_language.upper(),
            },
        )
        response.raise_for_status()
        translations = response.json().get("translations") or []
        if not translations:
            raise TranslationError(f"No translation returned for {target_language}")
        return translations[0]["text"]
    except (httpx.HTTPError, TranslationError, ValueError, KeyError) as exc:
        logger.warning(
            "translation_failed",
            target_language=target_language,
            error=str(exc),
        )
        return None


async def translate_text(
    text: str,
    target_languages: List[str],
    source_language: str,
) -> Dict[str, str]:
    """
    Translate ``text`` into every target language concurrently via DeepL.

    Languages whose request fails are left out of the result. Raises
    TranslationError when no language could be translated.
    """
    if not settings.DEEPL_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Translation service is not configured",
        )
    if not text or not text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Text to translate cannot be empty",
        )
    if not target_languages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one target language is required",
        )

    async with _client_factory() as client:
        results = await asyncio.gather(
            *(
                _translate_one(client, text.strip(), source_language, target)
                for target in target_languages
            )
        )

    translations = {
        target: translated
        for target, translated in zip(target_languages, results)
        if translated is not None
    }
    if not translations:
        raise TranslationError("All translations failed")

    logger.info(
        "translation_completed",
        requested=len(target_languages),
        succeeded=len(translations),
    )
    return translations
