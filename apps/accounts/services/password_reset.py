"""Password reset service."""

import logging
import secrets
import smtplib
from datetime import timedelta
from functools import partial

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.wallet.services.base_url import get_base_url

from .exceptions import UserNotFoundError, InvalidTokenError

User = get_user_model()

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)

RESET_EMAIL_SUBJECT = 'Reset your Vigo Coffee password'


def build_reset_url(token: str) -> str:
    return f"{get_base_url()}/auth/reset-password?token={token}"


def send_reset_email(email: str, token: str) -> None:
    """Mail the reset link. Delivery failures are logged, not raised."""
    reset_url = build_reset_url(token)
    body = (
        "We received a request to reset your Vigo Coffee password.\n\n"
        f"Open this link within {int(RESET_TOKEN_TTL.total_seconds() // 60)} minutes "
        f"to choose a new one:\n{reset_url}\n\n"
        "If you did not ask for this, you can ignore this email."
    )
    try:
        send_mail(RESET_EMAIL_SUBJECT, body, settings.DEFAULT_FROM_EMAIL, [email])
    except (smtplib.SMTPException, OSError):
        logger.exception("Could not send password reset email to %s", email)
        return
    logger.info("Password reset email sent to %s", email)


@transaction.atomic
def request_password_reset(*, email: str) -> str:
    """
    Generate a password reset token and mail the reset link once committed.

    Args:
        email: User's email address

    Returns:
        Reset token

    Raises:
        UserNotFoundError: If user does not exist
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(email__iexact=email, is_active=True)
        )
    except User.DoesNotExist:
        raise UserNotFoundError(f"No active user with email: {email}")

    reset_token = secrets.token_urlsafe(32)
    user.password_reset_token = reset_token
    user.password_reset_sent_at = timezone.now()
    user.save(update_fields=['password_reset_token', 'password_reset_sent_at'])

    transaction.on_commit(partial(send_reset_email, user.email, reset_token), robust=True)

    return reset_token


@transaction.atomic
def confirm_password_reset(*, token: str, new_password: str) -> User:
    """
    Reset user password with token.

    Args:
        token: Reset token
        new_password: New password

    Returns:
        User instance

    Raises:
        InvalidTokenError: If token is invalid or expired
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(password_reset_token=token, is_active=True)
        )
    except User.DoesNotExist:
        raise InvalidTokenError("Invalid or expired reset token")

    sent_at = user.password_reset_sent_at
    if sent_at is None or timezone.now() - sent_at > RESET_TOKEN_TTL:
        raise InvalidTokenError("Invalid or expired reset token")

    user.set_password(new_password)
    user.password_reset_token = None
    user.password_reset_sent_at = None
    user.save(update_fields=['password', 'password_reset_token', 'password_reset_sent_at'])

    return user
