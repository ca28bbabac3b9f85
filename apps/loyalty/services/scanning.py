"""Card lookup for the employee scan screen."""

from uuid import UUID

from apps.loyalty.models import Profile
from apps.loyalty.rewards import (
    normalize_redeemed,
    available_rewards,
    calculate_rewards,
    stamp_progress,
)

from .exceptions import CustomerNotFoundError


def get_customer(customer_id: UUID) -> Profile:
    try:
        return Profile.objects.get(id=customer_id)
    except Profile.DoesNotExist:
        raise CustomerNotFoundError("Customer not found")


def card_status(profile: Profile) -> dict:
    """Rewards and stamp progress for a profile."""
    redeemed = normalize_redeemed(profile.redeemed_rewards)
    return {
        'points': profile.points_balance,
        'stamps': stamp_progress(profile.points_balance),
        'rewards': calculate_rewards(profile.points_balance, redeemed),
        'availableRewards': available_rewards(profile.points_balance, redeemed),
        'redeemedRewards': redeemed,
    }


def scan_customer(*, customer_id: UUID) -> dict:
    """
    Everything the scan screen shows after reading a loyalty QR code.

    Raises:
        CustomerNotFoundError: Unknown customer
    """
    profile = get_customer(customer_id)
    return {
        'id': str(profile.id),
        'name': profile.get_display_name(),
        'total_purchases': profile.total_purchases,
        **card_status(profile),
    }
