from datetime import datetime
from typing import Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from product_genius.core.security import (
    ACCESS_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from product_genius.models.token_blacklist import REVOKED_ON_LOGOUT, TokenBlacklist
from product_genius.models.user import User


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def issue_tokens(user: User) -> Tuple[str, str]:
    """Return an (access, refresh) pair bound to the user's session version."""
    access_token = create_access_token(
        data={
            "sub": str(user.id),
            "role": user.role.value,
            "session_version": user.session_version,
        }
    )
    refresh_token = create_refresh_token(
        data={"sub": str(user.id), "session_version": user.session_version}
    )
    return access_token, refresh_token


def is_token_revoked(db: Session, jti: Optional[str]) -> bool:
    if not jti:
        return True
    return (
        db.query(TokenBlacklist.id)
        .filter(TokenBlacklist.jti == jti, TokenBlacklist.expires_at > datetime.utcnow())
        .first()
        is not None
    )


def revoke_token(db: Session, token: str, reason: str = REVOKED_ON_LOGOUT) -> None:
    """Blacklist a token's jti until it would have expired anyway. Caller commits."""
    payload = decode_token(token)
    jti, user_id, exp = payload.get("jti"), payload.get("sub"), payload.get("exp")
    token_type = payload.get("type")
    if not jti or not user_id or not exp or not token_type:
        return
    if db.query(TokenBlacklist.id).filter(TokenBlacklist.jti == jti).first():
        return
    db.add(
        TokenBlacklist(
            jti=jti,
            user_id=int(user_id),
            token_type=token_type,
            reason=reason,
            expires_at=datetime.utcfromtimestamp(exp),
        )
    )


def user_for_token(db: Session, token: str, token_type: str = ACCESS_TOKEN) -> User:
    """Resolve the user behind a token of ``token_type``.

    Rejects wrong token types, blacklisted jtis, unknown or inactive users and
    tokens minted before the user's last session rotation.
    """
    payload = decode_token(token)
    if payload.get("type") != token_type:
        raise _unauthorized("Invalid token type")

    if is_token_revoked(db, payload.get("jti")):
        raise _unauthorized("Token has been revoked")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid authentication credentials")

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    try:
        token_version = int(payload.get("session_version", 0))
    except (TypeError, ValueError):
        token_version = -1
    if token_version != user.session_version:
        raise _unauthorized("Session has been invalidated. Please login again.")

    return user
