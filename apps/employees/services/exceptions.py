"""
Domain exceptions for the employees app.

Raised by services and converted to HTTP responses in views.
"""


class EmployeesServiceError(Exception):
    """Base exception for all employee service errors."""
    pass


class InvalidEmployeeCredentialsError(EmployeesServiceError):
    """Raised when username/email and password do not match an employee."""
    pass


class EmployeeNotFoundError(EmployeesServiceError):
    """Raised when an employee does not exist."""
    pass


class EmployeeInactiveError(EmployeesServiceError):
    """Raised when an employee account has been deactivated."""
    pass


class InvitationInvalidError(EmployeesServiceError):
    """Raised when an invitation token is unknown or already used."""
    pass


class InvitationExpiredError(EmployeesServiceError):
    """Raised when an invitation is past its expiry date."""
    pass


class UsernameTakenError(EmployeesServiceError):
    """Raised when another employee already uses the username."""
    pass


class EmployeeAlreadyExistsError(EmployeesServiceError):
    """Raised when an employee already exists for the email."""
    pass


class SelfProtectionError(EmployeesServiceError):
    """Raised when an admin tries to lock themselves out."""
    pass
