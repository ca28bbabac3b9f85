"""
Domain exceptions for the wallet app.
"""


class WalletServiceError(Exception):
    """Base exception for wallet service errors."""
    pass


class PassCertificatesNotConfiguredError(WalletServiceError):
    """Signing certificate, key or WWDR certificate is missing."""

    def __init__(self, message='Apple Pass certificates not configured'):
        super().__init__(message)


class PassSigningError(WalletServiceError):
    """The pass bundle could not be signed."""
    pass


class GoogleWalletNotConfiguredError(WalletServiceError):
    """Issuer id or service account credentials are missing."""

    def __init__(self, message='Google Wallet is not configured'):
        super().__init__(message)


class GoogleWalletAPIError(WalletServiceError):
    """The Google Wallet REST API answered with an unexpected status."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)
