import ipaddress
from typing import List, Optional, Tuple

import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from product_genius.core.config import settings
from product_genius.core.exceptions import InsufficientPermissions
from product_genius.db.session import get_db
from product_genius.models.user import User
from product_genius.services.session_service import user_for_token

logger = structlog.get_logger()

ACCESS_COOKIE = "access_token"


def _extract_token(request: Request) -> Optional[str]:
    """Access token from the httpOnly cookie, else from a bearer header."""
    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token:
        return cookie_token
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and credentials:
        return credentials
    return None


def _first_valid_ip(candidates: List[str]) -> Optional[str]:
    for candidate in candidates:
        try:
            ipaddress.ip_address(candidate)
        except ValueError:
            continue
        return candidate
    return None


def get_real_client_ip(request: Request) -> Tuple[Optional[str], List[str]]:
    """Client IP plus the forwarded chain.

    Proxy headers are only honoured in production and only when the direct
    peer is a trusted proxy. ``CF-Connecting-IP`` wins over ``X-Forwarded-For``.
    """
    direct_ip = request.client.host if request.client else None
    if not (
        settings.ENVIRONMENT == "production"
        and settings.TRUST_PROXY_HEADERS
        and settings.is_trusted_proxy(direct_ip)
    ):
        return direct_ip, []

    cloudflare_ip = _first_valid_ip([request.headers.get("CF-Connecting-IP", "").strip()])
    if cloudflare_ip:
        return cloudflare_ip, [cloudflare_ip]

    chain = [ip.strip() for ip in request.headers.get("X-Forwarded-For", "").split(",") if ip.strip()]
    return _first_valid_ip(chain) or direct_ip, chain


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_for_token(db, token)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or invalid sessions yield None."""
    token = _extract_token(request)
    if not token:
        return None
    try:
        return user_for_token(db, token)
    except HTTPException:
        return None


def require_admin(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """OWNER or ADMIN; in production the client IP must also be allow-listed."""
    if not current_user.is_staff:
        raise InsufficientPermissions()

    client_ip, ip_chain = get_real_client_ip(request)
    log = logger.bind(
        action=f"{request.method} {request.url.path}",
        admin_user_id=current_user.id,
        client_ip=client_ip,
        ip_chain=ip_chain,
    )

    if settings.ENVIRONMENT == "production" and client_ip not in settings.admin_allowed_ips:
        log.warning("admin_access_denied")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    log.info("admin_action")
    return current_user
