"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    InvalidTokenError,
    UserNotFoundError,
)
from .user_registration import register_user
from .user_authentication import authenticate_user, issue_tokens
from .password_reset import request_password_reset, confirm_password_reset

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'InvalidTokenError',
    'UserNotFoundError',
    # Services
    'register_user',
    'authenticate_user',
    'issue_tokens',
    'request_password_reset',
    'confirm_password_reset',
]
