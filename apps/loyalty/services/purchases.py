"""Purchase recording service."""

import logging
from uuid import UUID

from django.db import transaction, DatabaseError

from apps.employees.models import Employee
from apps.loyalty.models import Profile, LoyaltyTransaction, TransactionType
from apps.loyalty.rewards import POINTS_PER_PURCHASE, calculate_rewards

from .exceptions import CustomerNotFoundError
from .wallet_sync import schedule_pass_refresh

logger = logging.getLogger(__name__)


def lock_profile(customer_id: UUID) -> Profile:
    try:
        return Profile.objects.select_for_update().get(id=customer_id)
    except Profile.DoesNotExist:
        raise CustomerNotFoundError("Customer not found")


def write_ledger_entry(**fields):
    """
    Append a ledger row inside a savepoint.

    A failing insert is logged and does not roll back the balance change.
    """
    try:
        with transaction.atomic():
            return LoyaltyTransaction.objects.create(**fields)
    except DatabaseError:
        logger.exception("Ledger write failed for customer %s", fields.get('customer'))
        return None


@transaction.atomic
def record_purchase(*, customer_id: UUID, employee: Employee = None) -> tuple:
    """
    Add one purchase and one point to a customer's card.

    Args:
        customer_id: Profile id (the value in the card's QR code)
        employee: Employee recording the sale, if known

    Returns:
        Tuple of (updated Profile, reward status dict from ``calculate_rewards``)

    Raises:
        CustomerNotFoundError: Unknown customer
    """
    profile = lock_profile(customer_id)

    profile.points_balance += POINTS_PER_PURCHASE
    profile.total_purchases += 1
    profile.save(update_fields=['points_balance', 'total_purchases', 'updated_at'])

    rewards = calculate_rewards(profile.points_balance, profile.redeemed_rewards)

    write_ledger_entry(
        customer=profile,
        employee=employee,
        type=TransactionType.PURCHASE,
        points_change=POINTS_PER_PURCHASE,
        points_balance_after=profile.points_balance,
    )

    schedule_pass_refresh(profile.id, reward_type=rewards['reward_type'])

    logger.info(
        "Purchase recorded for %s, balance %s, reward %s",
        profile.id, profile.points_balance, rewards['reward_type'],
    )
    return profile, rewards


def build_purchase_message(profile: Profile, rewards: dict) -> str:
    message = (
        f"Purchase recorded! {profile.get_display_name()} "
        f"New balance: {profile.points_balance} points"
    )
    if rewards['reward_earned']:
        message += f" {rewards['reward_message']}"
    return message
