import bleach
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from product_genius.models.product import MediaType


class ProductTranslationIn(BaseModel):
    locale: str = Field(..., min_length=1, max_length=10)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)

    @field_validator("locale", "title", "description")
    @classmethod
    def not_blank(cls, v):
        cleaned = bleach.clean(v, tags=[], attributes={}, strip=True).strip()
        if not cleaned:
            raise ValueError("Field cannot be blank")
        return cleaned


class ProductMediaIn(BaseModel):
    url: str = Field(..., min_length=1)
    type: MediaType
    sort_order: int = Field(..., ge=0)
    provider: Optional[str] = None
    alt: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ProductSupplierIn(BaseModel):
    supplier_id: int = Field(..., gt=0)
    url: str = Field(..., min_length=1)
    marketplace: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    is_primary: bool = False
    notes: Optional[str] = None


class ProductCreate(BaseModel):
    sku: Optional[str] = Field(default=None, max_length=100)
    suggested_price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    category_id: Optional[int] = Field(default=None, gt=0)
    is_active: bool = True
    metadata: Optional[Dict[str, Any]] = None
    translations: List[ProductTranslationIn] = Field(..., min_length=1)
    media: List[ProductMediaIn] = []
    suppliers: List[ProductSupplierIn] = []

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v

    @field_validator("translations")
    @classmethod
    def validate_unique_locales(cls, v):
        locales = [t.locale for t in v]
        if len(locales) != len(set(locales)):
            raise ValueError("Each locale can only have one translation")
        return v


class ProductUpdate(ProductCreate):
    # None keeps the current supplier links
    suppliers: Optional[List[ProductSupplierIn]] = None
