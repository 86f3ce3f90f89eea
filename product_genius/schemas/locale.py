from pydantic import BaseModel, Field


class LocaleUpdate(BaseModel):
    locale: str = Field(..., min_length=1, max_length=10)
