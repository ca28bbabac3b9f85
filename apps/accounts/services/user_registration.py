"""Customer registration service."""

import logging
from datetime import date
from typing import Optional

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from apps.loyalty.models import Profile

from .exceptions import UserRegistrationError

User = get_user_model()

logger = logging.getLogger(__name__)


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = "",
    phone: str = "",
    birthday: Optional[date] = None,
) -> User:
    """
    Register a new customer and open their loyalty profile.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name, also used as the card holder name
        phone: Optional phone number
        birthday: Optional birthday

    Returns:
        Created User instance

    Raises:
        UserRegistrationError: If the email is taken
    """
    email = User.objects.normalize_email(email)
    if User.objects.filter(email__iexact=email).exists():
        raise UserRegistrationError("An account with this email already exists")

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            display_name=display_name,
            phone=phone or '',
        )
        Profile.objects.create(
            user=user,
            full_name=display_name or None,
            email=email,
            phone=phone or None,
            birthday=birthday,
        )
    except IntegrityError as e:
        raise UserRegistrationError(f"Registration failed: {e}")

    logger.info("Registered customer %s", user.id)
    return user
