import logging
import smtplib
from email.message import EmailMessage
from product_genius.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_smtp(msg: EmailMessage) -> None:
    """
    Send an email message over SMTP.
    This is intended to be called from Celery workers, not request handlers.
    """
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.ehlo()
        if settings.SMTP_USE_TLS:
            server.starttls()
            server.ehlo()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)


def queue_verification_email(email: str, token: str) -> None:
    """
    Queue the account verification email on the Celery broker.

    Raises when the task cannot be queued so callers can roll back the
    pending registration.
    """
    from product_genius.tasks.email_tasks import send_verification_email

    result = send_verification_email.delay(email, token)
    logger.info(
        "Verification email queued",
        extra={"to": email, "task_id": result.id},
    )


def queue_password_reset_email(email: str, token: str) -> None:
    """Queue the password reset email; failures are logged, never raised."""
    try:
        from product_genius.tasks.email_tasks import send_password_reset

        result = send_password_reset.delay(email, token)
        logger.info(
            "Password reset email queued",
            extra={"to": email, "task_id": result.id},
        )
    except Exception as exc:
        logger.exception(
            "Failed to queue password reset email",
            extra={"to": email, "error": str(exc)},
        )
