"""Reward redemption service."""

import logging
from uuid import UUID

from django.db import transaction

from apps.employees.models import Employee
from apps.loyalty.models import Profile, TransactionType
from apps.loyalty.rewards import (
    REWARD_MEAL,
    normalize_redeemed,
    redeemed_key,
    is_reward_available,
)

from .exceptions import RewardNotAvailableError, RewardAlreadyRedeemedError
from .purchases import lock_profile, write_ledger_entry
from .wallet_sync import schedule_pass_refresh

logger = logging.getLogger(__name__)


@transaction.atomic
def redeem_reward(
    *,
    customer_id: UUID,
    reward_type: str,
    threshold: int,
    employee: Employee = None
) -> Profile:
    """
    Mark a reward threshold as redeemed. Points are not deducted.

    Args:
        customer_id: Profile id
        reward_type: 'coffee' or 'meal'
        threshold: Points threshold being claimed (e.g. 20 for the second coffee)
        employee: Employee handing out the reward

    Returns:
        Updated Profile

    Raises:
        CustomerNotFoundError: Unknown customer
        RewardNotAvailableError: Threshold not reached or not a reward multiple
        RewardAlreadyRedeemedError: Threshold redeemed before
    """
    profile = lock_profile(customer_id)

    if not is_reward_available(profile.points_balance, reward_type, threshold):
        raise RewardNotAvailableError("Reward not available")

    redeemed = normalize_redeemed(profile.redeemed_rewards)
    key = redeemed_key(reward_type)
    if threshold in redeemed[key]:
        raise RewardAlreadyRedeemedError("This reward has already been redeemed")

    redeemed[key].append(threshold)
    profile.redeemed_rewards = redeemed
    profile.save(update_fields=['redeemed_rewards', 'updated_at'])

    write_ledger_entry(
        customer=profile,
        employee=employee,
        type=(
            TransactionType.REDEMPTION_MEAL
            if reward_type == REWARD_MEAL
            else TransactionType.REDEMPTION_COFFEE
        ),
        points_change=0,
        points_balance_after=profile.points_balance,
        reward_points_threshold=threshold,
    )

    schedule_pass_refresh(profile.id)

    logger.info("Redeemed %s at %s points for %s", reward_type, threshold, profile.id)
    return profile
