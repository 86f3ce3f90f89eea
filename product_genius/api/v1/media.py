from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.orm import Session

from product_genius.api.deps import get_current_user
from product_genius.core.exceptions import MediaNotFound
from product_genius.core.rate_limiter import limiter
from product_genius.db.session import get_db
from product_genius.models.product import Media
from product_genius.models.user import User
from product_genius.utils.media_storage import (
    MEDIA_CACHE_HEADERS,
    MEDIA_TYPE_FALLBACK,
    UnsafeMediaPath,
    content_type_for,
    is_external_url,
    resolve_media_path,
)

router = APIRouter()
logger = structlog.get_logger()


def _serve_local_file(path: str, fallback_content_type: Optional[str] = None) -> FileResponse:
    try:
        resolved = resolve_media_path(path)
    except UnsafeMediaPath:
        logger.warning("media_access_denied", path=path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if not resolved.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return FileResponse(
        resolved,
        media_type=content_type_for(str(resolved), fallback_content_type),
        headers=MEDIA_CACHE_HEADERS,
    )


@router.get("", summary="Serve a media file by path")
@limiter.limit("300/minute")
def serve_media(request: Request, path: Optional[str] = None):
    if not path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File path is required")

    # Prevent directory traversal
    if ".." in path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")

    if is_external_url(path):
        return RedirectResponse(url=path, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    return _serve_local_file(path)


@router.get("/{media_id}", summary="Serve a product media item")
@limiter.limit("300/minute")
def serve_media_by_id(
    request: Request,
    media_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    media = db.query(Media).filter(Media.id == media_id).first()
    if not media:
        raise MediaNotFound()

    if is_external_url(media.url):
        return RedirectResponse(url=media.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    if ".." in media.url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")

    return _serve_local_file(media.url, MEDIA_TYPE_FALLBACK.get(media.type))
