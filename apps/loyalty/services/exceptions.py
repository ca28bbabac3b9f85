"""
Domain exceptions for the loyalty app.

These represent business rule violations and are converted to HTTP
responses in views.
"""


class LoyaltyServiceError(Exception):
    """Base exception for all loyalty service errors."""
    pass


class CustomerNotFoundError(LoyaltyServiceError):
    """Raised when a loyalty profile does not exist."""
    pass


class CustomerAlreadyExistsError(LoyaltyServiceError):
    """Raised when an account already uses the email."""
    pass


class RewardNotAvailableError(LoyaltyServiceError):
    """Raised when a reward threshold has not been reached or is not valid."""
    pass


class RewardAlreadyRedeemedError(LoyaltyServiceError):
    """Raised when a reward threshold was redeemed before."""
    pass
