from typing import Optional, Sequence

from fastapi import Request

from product_genius.core.config import settings

LOCALE_COOKIE_NAME = "locale"


def normalize_locale(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    locale = value.strip().lower()
    return locale if locale in settings.SUPPORTED_LOCALES else None


def resolve_locale(request: Request, locale: Optional[str] = None) -> str:
    """Pick the request locale: explicit query value, then cookie, then default."""
    return (
        normalize_locale(locale)
        or normalize_locale(request.cookies.get(LOCALE_COOKIE_NAME))
        or settings.DEFAULT_LOCALE
    )


def select_translation(translations: Sequence, locale: str):
    """Return the translation for ``locale``, falling back to the first one."""
    if not translations:
        return None
    for translation in translations:
        if translation.locale == locale:
            return translation
    return translations[0]
