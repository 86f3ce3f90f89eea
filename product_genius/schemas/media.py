from io import BytesIO
from typing import Optional, Set

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, field_validator, model_validator

from product_genius.models.product import MediaType


class MediaUploadValidation(BaseModel):
    filename: str
    content_type: Optional[str] = None
    data: bytes
    max_size: int
    image_extensions: Set[str]
    video_extensions: Set[str]
    extension: Optional[str] = None
    media_type: Optional[MediaType] = None

    @field_validator("image_extensions", "video_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, value):
        return {str(ext).lower() for ext in value}

    @model_validator(mode="after")
    def validate_media(self):
        if not self.data:
            raise ValueError("Empty file")
        if len(self.data) > self.max_size:
            raise ValueError("File too large")

        extension = self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else ""
        if extension in self.image_extensions:
            try:
                with Image.open(BytesIO(self.data)) as image:
                    image.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as exc:
                raise ValueError("Invalid image file") from exc
            self.media_type = MediaType.IMAGE
        elif extension in self.video_extensions:
            if self.content_type and not self.content_type.lower().startswith(("video/", "application/octet-stream")):
                raise ValueError("Invalid video MIME type")
            self.media_type = MediaType.VIDEO
        else:
            raise ValueError("File extension not allowed")

        self.extension = extension
        return self
