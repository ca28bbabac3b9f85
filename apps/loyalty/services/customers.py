"""Customer management for the admin dashboard."""

import logging
import secrets
from datetime import date
from typing import Optional
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q

from apps.loyalty.models import Profile

from .exceptions import CustomerNotFoundError, CustomerAlreadyExistsError

User = get_user_model()

logger = logging.getLogger(__name__)

CUSTOMER_LIST_LIMIT = 100
PLACEHOLDER_EMAIL_DOMAIN = 'vigo-loyalty.local'


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim a string; blank becomes None so passes never render empty fields."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def list_customers(*, search: Optional[str] = None, limit: int = CUSTOMER_LIST_LIMIT):
    """Most recently active customers first, optionally filtered by name, email or phone."""
    queryset = Profile.objects.all()
    if search:
        queryset = queryset.filter(
            Q(full_name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search)
        )
    return queryset.order_by('-updated_at')[:limit]


@transaction.atomic
def create_customer(
    *,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    birthday: Optional[date] = None
) -> Profile:
    """
    Enrol a walk-in customer from the dashboard.

    The backing user account has no usable password. Customers without an
    email get a placeholder login address that is never shown.

    Raises:
        CustomerAlreadyExistsError: An account already uses the email
    """
    email = _clean(email)
    if email:
        email = User.objects.normalize_email(email)
        taken = (
            Profile.objects.filter(email__iexact=email).exists()
            or User.objects.filter(email__iexact=email).exists()
        )
        if taken:
            raise CustomerAlreadyExistsError("An account with this email already exists")

    login_email = email or f"anonymous-{secrets.token_hex(8)}@{PLACEHOLDER_EMAIL_DOMAIN}"
    user = User.objects.create_user(
        email=login_email,
        password=None,
        display_name=full_name.strip(),
    )

    profile = Profile.objects.create(
        user=user,
        full_name=full_name.strip(),
        email=email,
        phone=_clean(phone),
        birthday=birthday,
    )

    logger.info("Customer %s created from the dashboard", profile.id)
    return profile


@transaction.atomic
def delete_customer(*, customer_id: UUID) -> None:
    """
    Remove a customer, its ledger and its login account.

    Raises:
        CustomerNotFoundError: Unknown customer
    """
    try:
        profile = Profile.objects.select_related('user').get(id=customer_id)
    except Profile.DoesNotExist:
        raise CustomerNotFoundError("Customer not found")

    user = profile.user
    if hasattr(user, 'employee'):
        # Staff keep their login; only the loyalty card goes.
        profile.delete()
    else:
        user.delete()

    logger.info("Customer %s deleted", customer_id)
