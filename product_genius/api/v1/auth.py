from datetime import datetime, timedelta

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from product_genius.core.config import settings
from product_genius.core.exceptions import InvalidCredentials
from product_genius.core.rate_limiter import limiter
from product_genius.core.security import (
    REFRESH_TOKEN,
    generate_reset_token,
    hash_password,
    verify_password,
)
from product_genius.db.session import get_db
from product_genius.middleware.csrf import CSRF_COOKIE_NAME, generate_csrf_token, set_csrf_cookie
from product_genius.models.user import User
from product_genius.schemas.user import ForgotPasswordRequest, ResetPasswordRequest, UserLogin
from product_genius.services.session_service import issue_tokens, revoke_token, user_for_token
from product_genius.utils.email import queue_password_reset_email
from product_genius.utils.response import success

router = APIRouter()
logger = structlog.get_logger()

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _secure_cookies(request: Request) -> bool:
    return settings.ENVIRONMENT == "production" and request.url.scheme == "https"


def _set_cookie(response: JSONResponse, request: Request, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=_secure_cookies(request),
        samesite="lax",
        max_age=max_age,
        path="/",
    )


async def _read_credentials(request: Request) -> UserLogin:
    if "application/json" in request.headers.get("content-type", ""):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    else:
        payload = dict(await request.form())
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    try:
        return UserLogin.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


@router.get("/csrf-token")
def get_csrf_token():
    response = JSONResponse(content=success(message="CSRF token set"))
    set_csrf_cookie(response, generate_csrf_token())
    return response


@router.post(
    "/login",
    summary="Login user",
    description="""
Authenticates a user and sets `access_token` and `refresh_token` as httpOnly cookies.

Accepts a JSON body or form fields (`email`, `password`). The tokens are also
returned in the body for API clients that send a bearer header instead.
""",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
    },
)
@limiter.limit("5/minute")
async def login(request: Request, db: Session = Depends(get_db)):
    credentials = await _read_credentials(request)

    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.info("login_failed", email=credentials.email.lower())
        raise InvalidCredentials()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    # One live session per user in production
    if settings.ENVIRONMENT == "production":
        user.session_version += 1
        db.commit()
        db.refresh(user)

    access_token, refresh_token = issue_tokens(user)
    response = JSONResponse(
        content=success(
            data={
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "role": user.role.value,
                },
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
            message="Login successful",
        )
    )
    _set_cookie(response, request, ACCESS_COOKIE, access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    _set_cookie(response, request, REFRESH_COOKIE, refresh_token, settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400)

    logger.info("login_succeeded", user_id=user.id, role=user.role.value)
    return response


@router.post("/refresh")
@limiter.limit("20/minute")
def refresh_token(request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found",
        )

    user = user_for_token(db, token, REFRESH_TOKEN)
    access_token, _ = issue_tokens(user)

    response = JSONResponse(content=success(message="Token refreshed"))
    _set_cookie(response, request, ACCESS_COOKIE, access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    return response


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        token = request.cookies.get(key)
        if not token:
            continue
        try:
            revoke_token(db, token)
        except HTTPException:
            # Expired or tampered tokens are already unusable.
            continue

    try:
        db.commit()
    except IntegrityError:
        db.rollback()

    response = JSONResponse(content=success(message="Logout successful"))
    for key in (ACCESS_COOKIE, REFRESH_COOKIE, CSRF_COOKIE_NAME):
        response.delete_cookie(key=key, path="/", samesite="lax", secure=_secure_cookies(request))
    return response


@router.post("/forgot-password")
@limiter.limit("5/minute")
def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    """Always answers 200 so the endpoint cannot be used to probe for accounts."""
    user = db.query(User).filter(User.email == payload.email.lower()).first()

    if user and user.is_active:
        user.reset_token = generate_reset_token()
        user.reset_token_expires = datetime.utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        db.commit()
        queue_password_reset_email(user.email, user.reset_token)

    return success(
        message="If an account exists, password reset instructions have been sent.",
    )


@router.post("/reset-password")
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.reset_token == payload.token).first()
    if not user or not user.reset_token_expires or user.reset_token_expires < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    user.password_hash = hash_password(payload.new_password)
    user.reset_token = None
    user.reset_token_expires = None
    user.session_version += 1
    db.commit()

    logger.info("password_reset", user_id=user.id)
    return success(message="Password has been reset. Please login again.")
