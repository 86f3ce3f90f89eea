from pydantic import BaseModel
from typing import List


class TranslationRequest(BaseModel):
    text: str = ""
    target_languages: List[str] = []
    source_language: str = "en"
