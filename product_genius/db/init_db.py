from sqlalchemy.orm import Session
import logging
from product_genius.models.user import User, UserRole
from product_genius.models.plan import Plan
from product_genius.core.config import settings
from product_genius.core.security import hash_password

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    {
        "name": "Basic",
        "description": "Product research essentials for new sellers",
        "price": 29.0,
        "features": ["100 product views per month", "Supplier price comparison"],
    },
    {
        "name": "Pro",
        "description": "Full catalogue access for growing stores",
        "price": 99.0,
        "features": ["Unlimited product views", "Marketplace comparison", "Priority support"],
    },
    {
        "name": "Enterprise",
        "description": "Team access and dedicated sourcing support",
        "price": 299.0,
        "features": ["Everything in Pro", "Team seats", "Dedicated account manager"],
    },
]


def init_db(db: Session) -> None:
    """Initialize database with default data"""

    # Create owner user
    owner_email = settings.DEFAULT_OWNER_EMAIL.strip().lower()
    owner = db.query(User).filter(User.email == owner_email).first()
    if not owner:
        seed_password = (settings.DEFAULT_OWNER_PASSWORD or "").strip()
        if not seed_password:
            message = (
                "Missing owner bootstrap credentials: set DEFAULT_OWNER_PASSWORD "
                "or create an owner user manually before launch."
            )
            if settings.ENVIRONMENT == "production":
                logger.error("%s env=%s", message, settings.ENVIRONMENT)
                raise RuntimeError(message)
            logger.warning("%s env=%s", message, settings.ENVIRONMENT)
        else:
            owner = User(
                email=owner_email,
                password_hash=hash_password(seed_password),
                name="Owner",
                role=UserRole.OWNER,
                is_active=True,
            )
            db.add(owner)
            logger.info("owner_user_created email=%s", owner_email)

    # Create plans
    for plan_data in DEFAULT_PLANS:
        existing = db.query(Plan).filter(Plan.name == plan_data["name"]).first()
        if not existing:
            db.add(Plan(interval="month", active=True, **plan_data))
            logger.info("plan_created name=%s", plan_data["name"])

    db.commit()
    logger.info("database_initialized")


if __name__ == "__main__":
    import product_genius.db.base  # noqa: F401
    from product_genius.db.session import SessionLocal
    db = SessionLocal()
    init_db(db)
    db.close()
