"""Schedules wallet pass refreshes once the surrounding transaction commits."""

from functools import partial

from django.db import transaction


def schedule_pass_refresh(profile_id, reward_type=None):
    # Imported lazily: the wallet app depends on loyalty models.
    from apps.wallet.services.notifications import sync_loyalty_pass

    transaction.on_commit(
        partial(sync_loyalty_pass, profile_id, reward_type=reward_type),
        robust=True,
    )
