"""
Loyalty app services layer.

Point balances are only changed here, under a row lock on the profile.
Wallet passes are refreshed after the transaction commits.
"""

from .exceptions import (
    LoyaltyServiceError,
    CustomerNotFoundError,
    CustomerAlreadyExistsError,
    RewardNotAvailableError,
    RewardAlreadyRedeemedError,
)

from .purchases import (
    record_purchase,
    build_purchase_message,
)

from .redemptions import (
    redeem_reward,
)

from .scanning import (
    get_customer,
    card_status,
    scan_customer,
)

from .customers import (
    list_customers,
    create_customer,
    delete_customer,
)

from .stats import (
    dashboard_stats,
)

from .ledger import (
    day_bounds,
    list_transactions,
)


__all__ = [
    # Exceptions
    'LoyaltyServiceError',
    'CustomerNotFoundError',
    'CustomerAlreadyExistsError',
    'RewardNotAvailableError',
    'RewardAlreadyRedeemedError',

    # Purchases and rewards
    'record_purchase',
    'build_purchase_message',
    'redeem_reward',

    # Lookup
    'get_customer',
    'card_status',
    'scan_customer',

    # Admin
    'list_customers',
    'create_customer',
    'delete_customer',
    'dashboard_stats',
    'day_bounds',
    'list_transactions',
]
