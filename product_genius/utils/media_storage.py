import os
import uuid
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile, HTTPException
from pydantic import ValidationError
from product_genius.core.config import settings
from product_genius.models.product import MediaType
from product_genius.schemas.media import MediaUploadValidation
import logging

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
MEDIA_TYPE_FALLBACK = {
    MediaType.IMAGE: "image/jpeg",
    MediaType.VIDEO: "video/mp4",
}
MEDIA_CACHE_HEADERS = {
    "Cache-Control": "public, max-age=31536000, immutable",
    "Content-Disposition": "inline",
}


class UnsafeMediaPath(Exception):
    """Raised when a media path resolves outside the upload directory."""


def is_external_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def is_local_upload(url: str) -> bool:
    return url.startswith(f"/{settings.UPLOAD_DIR}/")


def media_root() -> Path:
    return Path(settings.MEDIA_ROOT).resolve()


def upload_root() -> Path:
    return media_root() / settings.UPLOAD_DIR


def content_type_for(path: str, fallback: Optional[str] = None) -> str:
    ext = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES.get(ext) or fallback or DEFAULT_CONTENT_TYPE


def resolve_media_path(path: str) -> Path:
    """Resolve a public media path to a file inside the upload directory.

    Only files under ``<MEDIA_ROOT>/<UPLOAD_DIR>`` are reachable. Anything else
    under the media root is refused.
    """
    root = upload_root().resolve()
    resolved = (media_root() / path.lstrip("/")).resolve()
    if root not in resolved.parents:
        raise UnsafeMediaPath(path)
    return resolved


def validate_media_upload(file: UploadFile) -> MediaUploadValidation:
    """Validate an uploaded image/video and return the checked payload."""
    filename = getattr(file, "filename", "") or ""
    max_size = settings.MAX_UPLOAD_SIZE
    file.file.seek(0)
    try:
        data = file.file.read(max_size + 1)
        try:
            return MediaUploadValidation.model_validate(
                {
                    "filename": filename,
                    "content_type": getattr(file, "content_type", None),
                    "data": data,
                    "max_size": max_size,
                    "image_extensions": settings.ALLOWED_IMAGE_EXTENSIONS,
                    "video_extensions": settings.ALLOWED_VIDEO_EXTENSIONS,
                }
            )
        except ValidationError as exc:
            error_message = exc.errors()[0].get("msg", "Invalid media file")
            raise HTTPException(
                status_code=400,
                detail=f"{filename or 'file'}: {error_message.removeprefix('Value error, ')}",
            ) from exc
    finally:
        file.file.seek(0)


def save_product_media(file: UploadFile, product_id: int) -> dict:
    """Save an uploaded product file and return its public url and media type.

    Files land in ``<UPLOAD_DIR>/products/<product_id>/<uuid>.<ext>`` under the
    media root. The client filename is never used on disk.
    """
    validated = validate_media_upload(file)

    relative_dir = Path(settings.UPLOAD_DIR) / "products" / str(product_id)
    target_dir = upload_root() / "products" / str(product_id)
    target_dir.mkdir(parents=True, exist_ok=True)

    unique_filename = f"{uuid.uuid4()}.{validated.extension}"
    with open(target_dir / unique_filename, "wb") as out:
        out.write(validated.data)

    url = f"/{relative_dir.as_posix()}/{unique_filename}"
    logger.info("media_saved product_id=%s url=%s", product_id, url)
    return {"url": url, "type": validated.media_type}


def delete_media_file(url: str) -> None:
    """Delete a locally stored media file; missing files are ignored."""
    try:
        path = resolve_media_path(url)
    except UnsafeMediaPath:
        logger.warning("media_delete_refused url=%s", url)
        return
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        logger.exception("Error deleting media file: %s", url)


def delete_media_files(urls: Iterable[str]) -> None:
    for url in urls:
        if is_local_upload(url):
            delete_media_file(url)
