import bleach
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from product_genius.core.config import settings


class CategoryTranslationIn(BaseModel):
    locale: str = Field(..., min_length=1, max_length=10)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = ""

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v):
        locale = v.strip().lower()
        if locale not in settings.SUPPORTED_LOCALES:
            raise ValueError(f"Unsupported locale: {v}")
        return locale

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        cleaned = bleach.clean(v, tags=[], attributes={}, strip=True).strip()
        if not cleaned:
            raise ValueError("Title is required")
        return cleaned

    @field_validator("description")
    @classmethod
    def default_description(cls, v):
        if not v:
            return ""
        return bleach.clean(v, tags=[], attributes={}, strip=True).strip()


class CategoryCreate(BaseModel):
    translations: List[CategoryTranslationIn] = Field(..., min_length=1)

    @field_validator("translations")
    @classmethod
    def validate_unique_locales(cls, v):
        locales = [t.locale for t in v]
        if len(locales) != len(set(locales)):
            raise ValueError("Each locale can only have one translation")
        return v


class CategoryUpdate(CategoryCreate):
    pass
