"""Employee login and lookup services."""

import logging

from django.db import transaction
from django.utils import timezone

from apps.employees.models import Employee

from .exceptions import (
    InvalidEmployeeCredentialsError,
    EmployeeInactiveError,
    EmployeeNotFoundError,
)

logger = logging.getLogger(__name__)


def _find_employee(identifier: str):
    """Look an employee up by email when the identifier contains '@', else by username."""
    lookup = 'email__iexact' if '@' in identifier else 'username__iexact'
    return (
        Employee.objects
        .select_related('user')
        .filter(**{lookup: identifier.strip()})
        .first()
    )


@transaction.atomic
def authenticate_employee(*, username: str, password: str) -> Employee:
    """
    Authenticate an employee by username (or email) and password.

    Args:
        username: Employee username or email address
        password: Account password

    Returns:
        The authenticated Employee

    Raises:
        InvalidEmployeeCredentialsError: Unknown employee or wrong password
        EmployeeInactiveError: Employee has been deactivated
    """
    employee = _find_employee(username)
    if employee is None:
        logger.info("Employee login failed: no employee matches %r", username)
        raise InvalidEmployeeCredentialsError("Invalid username or password")

    if not employee.is_active:
        raise EmployeeInactiveError("Account is not active")

    user = employee.user
    if not user.check_password(password):
        logger.info("Employee login failed: wrong password for %s", employee.id)
        raise InvalidEmployeeCredentialsError("Invalid username or password")

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    return employee


def check_employee(*, email: str) -> Employee:
    """
    Confirm that an email belongs to an active employee.

    Raises:
        EmployeeNotFoundError: No employee has this email
        EmployeeInactiveError: Employee has been deactivated
    """
    try:
        employee = Employee.objects.get(email__iexact=email)
    except Employee.DoesNotExist:
        raise EmployeeNotFoundError("Employee not found")

    if not employee.is_active:
        raise EmployeeInactiveError("Employee account is not active")

    return employee
