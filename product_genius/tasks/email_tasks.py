from email.message import EmailMessage
from typing import Optional

from celery import Task
from celery.utils.log import get_task_logger

from product_genius.core.celery_app import celery_app
from product_genius.core.config import settings
from product_genius.utils.email import _send_email_smtp
from product_genius.utils.email_templates import (
    password_reset_template,
    verification_template,
    verification_url,
)

logger = get_task_logger(__name__)

VERIFICATION_SUBJECT = "Verify Your Email Address - Product Genius"
PASSWORD_RESET_SUBJECT = "Reset Your Product Genius Password"


class EmailTask(Task):
    """Email delivery with exponential backoff on SMTP failures."""

    autoretry_for = (Exception,)
    retry_kwargs = {"max_retries": 3}
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    acks_late = True


def build_email(
    *,
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    from_email: Optional[str] = None,
) -> EmailMessage:
    """Plain-text message with an optional HTML alternative."""
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_email or f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    msg["To"] = to
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")
    return msg


def _deliver(task: Task, msg: EmailMessage, kind: str) -> None:
    try:
        _send_email_smtp(msg)
    except Exception as exc:
        logger.exception("%s_email_failed to=%s attempt=%s", kind, msg["To"], task.request.retries)
        raise task.retry(exc=exc)
    logger.info("%s_email_sent to=%s", kind, msg["To"])


@celery_app.task(base=EmailTask, bind=True)
def send_verification_email(self, user_email: str, token: str):
    link = verification_url(token)
    msg = build_email(
        to=user_email,
        subject=VERIFICATION_SUBJECT,
        text=f"Welcome to Product Genius! Confirm your email address to finish signing up: {link}",
        html=verification_template(token),
    )
    _deliver(self, msg, "verification")


@celery_app.task(base=EmailTask, bind=True)
def send_password_reset(self, user_email: str, reset_token: str):
    msg = build_email(
        to=user_email,
        subject=PASSWORD_RESET_SUBJECT,
        text=(
            "We received a request to reset your Product Genius password. "
            f"Open this link within {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes: "
            f"{settings.FRONTEND_URL}/auth/reset-password?token={reset_token}"
        ),
        html=password_reset_template(reset_token),
    )
    _deliver(self, msg, "password_reset")
