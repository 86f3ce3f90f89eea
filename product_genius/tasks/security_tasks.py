from datetime import datetime

from celery import shared_task

from product_genius.db.session import SessionLocal
from product_genius.models.temp_account import TempAccount
from product_genius.models.token_blacklist import TokenBlacklist


def purge_expired_temp_accounts(db) -> int:
    deleted = (
        db.query(TempAccount)
        .filter(TempAccount.expires_at < datetime.utcnow())
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


@shared_task(bind=True, max_retries=3)
def cleanup_expired_temp_accounts(self):
    """Delete pending registrations whose verification link has expired."""
    db = SessionLocal()
    try:
        return {"deleted": purge_expired_temp_accounts(db)}
    except Exception as exc:
        db.rollback()
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()


@shared_task(bind=True, max_retries=3)
def cleanup_expired_blacklisted_tokens(self):
    """Delete expired token blacklist rows to keep the table bounded."""
    db = SessionLocal()
    try:
        deleted = (
            db.query(TokenBlacklist)
            .filter(TokenBlacklist.expires_at < datetime.utcnow())
            .delete(synchronize_session=False)
        )
        db.commit()
        return {"deleted": deleted}
    except Exception as exc:
        db.rollback()
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
