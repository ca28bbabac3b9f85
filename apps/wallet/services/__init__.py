"""
Wallet app services layer.

Apple Wallet passes are signed ``.pkpass`` bundles refreshed through the
PassKit web service and APNs pushes. Google Wallet passes live on Google's
side and are updated through its REST API.
"""

from .exceptions import (
    WalletServiceError,
    PassCertificatesNotConfiguredError,
    PassSigningError,
    GoogleWalletNotConfiguredError,
    GoogleWalletAPIError,
)

from .base_url import (
    get_base_url,
    is_public_url,
)

from .auth_tokens import (
    generate_auth_token,
    validate_auth_token,
    is_authorized,
)

from .apple_passes import (
    PKPASS_CONTENT_TYPE,
    build_loyalty_pass_json,
    build_gift_card_pass_json,
    generate_loyalty_pkpass,
    generate_gift_card_pkpass,
)

from .registrations import (
    register_device,
    unregister_device,
    serials_for_device,
)

from .apns import (
    notify_pass_update,
    notify_reward_earned,
    notify_gift_card_update,
)

from .google_wallet import (
    is_google_wallet_configured,
    create_or_update_pass,
    update_google_wallet_pass,
    has_google_wallet_pass,
)

from .notifications import (
    sync_loyalty_pass,
    sync_gift_card_pass,
)


__all__ = [
    # Exceptions
    'WalletServiceError',
    'PassCertificatesNotConfiguredError',
    'PassSigningError',
    'GoogleWalletNotConfiguredError',
    'GoogleWalletAPIError',

    # URLs and auth
    'get_base_url',
    'is_public_url',
    'generate_auth_token',
    'validate_auth_token',
    'is_authorized',

    # Apple Wallet
    'PKPASS_CONTENT_TYPE',
    'build_loyalty_pass_json',
    'build_gift_card_pass_json',
    'generate_loyalty_pkpass',
    'generate_gift_card_pkpass',
    'register_device',
    'unregister_device',
    'serials_for_device',
    'notify_pass_update',
    'notify_reward_earned',
    'notify_gift_card_update',

    # Google Wallet
    'is_google_wallet_configured',
    'create_or_update_pass',
    'update_google_wallet_pass',
    'has_google_wallet_pass',

    # Post-commit hooks
    'sync_loyalty_pass',
    'sync_gift_card_pass',
]
