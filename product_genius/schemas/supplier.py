import bleach
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    marketplace: Optional[str] = Field(default=None, max_length=100)
    base_url: Optional[str] = Field(default=None, max_length=500)
    contact_info: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        cleaned = bleach.clean(v, tags=[], attributes={}, strip=True).strip()
        if not cleaned:
            raise ValueError("Supplier name is required")
        return cleaned

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v):
        if v is None:
            return v
        return bleach.clean(v, tags=[], attributes={}, strip=True).strip()


class SupplierResponse(BaseModel):
    id: int
    name: str
    marketplace: Optional[str]
    base_url: Optional[str]
    contact_info: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True
