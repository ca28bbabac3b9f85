"""
Post-commit wallet refresh hooks.

These run after a balance change has been committed. Failures are logged
and never propagate: the purchase or charge has already happened.
"""

import logging

import httpx
import jwt
from django.conf import settings

from .apns import notify_pass_update, notify_reward_earned
from .google_wallet import update_google_wallet_pass

logger = logging.getLogger(__name__)

# Bad keys surface as PyJWT errors, unreadable key files as OSError.
PUSH_ERRORS = (httpx.HTTPError, jwt.PyJWTError, OSError, KeyError, ValueError)


def sync_loyalty_pass(profile_id, reward_type=None):
    """Push the new loyalty balance to Apple and Google wallets."""
    from apps.loyalty.models import Profile

    serial_number = str(profile_id)
    try:
        if reward_type:
            notify_reward_earned(serial_number, reward_type)
        else:
            notify_pass_update(serial_number)
    except PUSH_ERRORS:
        logger.exception("Apple Wallet refresh failed for pass %s", serial_number)

    profile = Profile.objects.filter(id=profile_id).first()
    if profile is None:
        logger.warning("Profile %s vanished before wallet refresh", profile_id)
        return
    update_google_wallet_pass(profile)


def sync_gift_card_pass(serial_number):
    """Tell devices holding the gift card pass to fetch the new balance."""
    try:
        notify_pass_update(str(serial_number), settings.GIFT_CARD_PASS_TYPE_ID)
    except PUSH_ERRORS:
        logger.exception("Apple Wallet refresh failed for gift card %s", serial_number)
