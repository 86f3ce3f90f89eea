from datetime import datetime, timedelta
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from product_genius.api.deps import get_current_user
from product_genius.core.config import settings
from product_genius.core.exceptions import EmailAlreadyExists
from product_genius.core.rate_limiter import limiter
from product_genius.core.security import generate_verification_token, hash_password
from product_genius.db.session import get_db
from product_genius.models.order import Order
from product_genius.models.subscription import Subscription
from product_genius.models.temp_account import TempAccount
from product_genius.models.user import User, UserRole
from product_genius.schemas.order import OrderResponse
from product_genius.schemas.plan import SubscriptionResponse
from product_genius.schemas.user import TempAccountCreate, UserResponse, UserUpdate
from product_genius.utils import email as email_utils
from product_genius.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


def _login_redirect(**params) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.FRONTEND_URL}/auth/login?{urlencode(params)}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.post(
    "/temp",
    status_code=status.HTTP_201_CREATED,
    summary="Start registration",
    description="""
Stores a pending account and emails a verification link.

1. Email must not belong to an existing user
2. A pending account for the same email is replaced
3. The account becomes a real user once the link is opened
""",
    responses={
        201: {"description": "Verification email sent"},
        409: {"description": "Email already registered"},
        429: {"description": "Too many registration attempts"},
    },
)
@limiter.limit("5/minute")
def create_temp_account(
    request: Request,
    payload: TempAccountCreate,
    db: Session = Depends(get_db),
):
    if db.query(User.id).filter(User.email == payload.email).first():
        raise EmailAlreadyExists()

    attempts = 0
    existing = db.query(TempAccount).filter(TempAccount.email == payload.email).first()
    if existing:
        attempts = existing.attempts + 1
        if attempts > settings.MAX_VERIFICATION_ATTEMPTS:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many verification attempts. Please try again later.",
            )
        db.delete(existing)
        db.flush()

    temp_account = TempAccount(
        email=payload.email,
        name=payload.name,
        password_hash=hash_password(payload.password),
        token=generate_verification_token(),
        expires_at=datetime.utcnow() + timedelta(hours=settings.TEMP_ACCOUNT_EXPIRE_HOURS),
        attempts=attempts,
    )
    db.add(temp_account)
    db.commit()
    db.refresh(temp_account)

    try:
        email_utils.queue_verification_email(temp_account.email, temp_account.token)
    except Exception as exc:
        logger.error("verification_email_queue_failed", email=temp_account.email, error=str(exc))
        db.delete(temp_account)
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification email",
        ) from exc

    logger.info("temp_account_created", email=temp_account.email, attempts=attempts)
    return success(
        data={"email": temp_account.email},
        message="Verification email sent. Please check your inbox.",
    )


@router.get("/temp/verify/{token}")
def verify_temp_account(token: str, db: Session = Depends(get_db)):
    temp_account = db.query(TempAccount).filter(TempAccount.token == token).first()
    if not temp_account:
        return _login_redirect(error="invalid_token")

    if temp_account.is_expired:
        db.delete(temp_account)
        db.commit()
        return _login_redirect(error="token_expired")

    email = temp_account.email
    if db.query(User.id).filter(User.email == email).first():
        db.delete(temp_account)
        db.commit()
        return _login_redirect(error="user_exists")

    try:
        db.add(
            User(
                email=email,
                name=temp_account.name,
                password_hash=temp_account.password_hash,
                role=UserRole.USER,
                is_active=True,
            )
        )
        db.delete(temp_account)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("temp_account_verification_failed", email=email)
        return _login_redirect(error="verification_failed")

    logger.info("user_verified", email=email)
    return _login_redirect(verified="true", email=email)


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    return success(
        data=UserResponse.model_validate(current_user),
        message="User retrieved",
    )


@router.put("/me")
def update_me(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if payload.name is not None:
        current_user.name = payload.name.strip() or None
    db.commit()
    db.refresh(current_user)
    return success(
        data=UserResponse.model_validate(current_user),
        message="Profile updated",
    )


@router.get("/me/subscription")
def get_my_subscription(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = (
        db.query(Subscription)
        .options(selectinload(Subscription.plan))
        .filter(Subscription.user_id == current_user.id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )
    return success(
        data=SubscriptionResponse.model_validate(subscription) if subscription else None,
        message="Subscription retrieved",
    )


@router.get("/me/orders")
def get_my_orders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return success(
        data=[OrderResponse.model_validate(order) for order in orders],
        message="Orders retrieved",
    )
