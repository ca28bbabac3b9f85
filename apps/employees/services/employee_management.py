"""Admin-side employee management."""

import logging
import secrets
from typing import Optional
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.employees.models import Employee

from .exceptions import (
    EmployeeNotFoundError,
    EmployeeAlreadyExistsError,
    UsernameTakenError,
    SelfProtectionError,
)

User = get_user_model()

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('full_name', 'username', 'email', 'is_active', 'is_admin')


def list_employees():
    """All employees, newest first."""
    return Employee.objects.select_related('user').order_by('-created_at')


def _lock_employee(employee_id: UUID) -> Employee:
    try:
        return (
            Employee.objects
            .select_for_update()
            .select_related('user')
            .get(id=employee_id)
        )
    except Employee.DoesNotExist:
        raise EmployeeNotFoundError("Employee not found")


@transaction.atomic
def update_employee(*, employee_id: UUID, acting_employee: Employee, **changes) -> Employee:
    """
    Update an employee's profile, status or role.

    Only keys in ``UPDATABLE_FIELDS`` are applied. Email changes are mirrored
    on the linked user account.

    Raises:
        EmployeeNotFoundError: Unknown employee
        UsernameTakenError: Another employee has the new username
        EmployeeAlreadyExistsError: Another employee or account has the new email
        SelfProtectionError: An admin tried to deactivate or demote themselves
    """
    employee = _lock_employee(employee_id)
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

    username = changes.get('username')
    if username and Employee.objects.filter(username__iexact=username).exclude(id=employee.id).exists():
        raise UsernameTakenError("Username already taken")

    email = changes.get('email')
    if email and Employee.objects.filter(email__iexact=email).exclude(id=employee.id).exists():
        raise EmployeeAlreadyExistsError("An employee with this email already exists")
    if email and User.objects.filter(email__iexact=email).exclude(id=employee.user_id).exists():
        raise EmployeeAlreadyExistsError("An account with this email already exists")

    if employee.id == acting_employee.id and employee.is_admin:
        if changes.get('is_active') is False:
            raise SelfProtectionError("You cannot deactivate your own admin account")
        if changes.get('is_admin') is False:
            raise SelfProtectionError("You cannot remove admin status from your own account")

    for field, value in changes.items():
        setattr(employee, field, value)
    employee.save()

    if email and employee.user.email != email:
        employee.user.email = email
        employee.user.save(update_fields=['email'])

    logger.info("Employee %s updated by %s: %s", employee.id, acting_employee.id, sorted(changes))
    return employee


@transaction.atomic
def deactivate_employee(*, employee_id: UUID, acting_employee: Employee) -> Employee:
    """
    Soft-delete an employee by clearing ``is_active``.

    Raises:
        EmployeeNotFoundError: Unknown employee
        SelfProtectionError: An admin tried to deactivate themselves
    """
    employee = _lock_employee(employee_id)

    if employee.id == acting_employee.id:
        raise SelfProtectionError("You cannot deactivate your own admin account")

    employee.is_active = False
    employee.save(update_fields=['is_active', 'updated_at'])

    logger.info("Employee %s deactivated by %s", employee.id, acting_employee.id)
    return employee


@transaction.atomic
def create_admin(
    *,
    email: str,
    username: str,
    password: Optional[str] = None,
    full_name: str = ""
) -> tuple:
    """
    Create an active admin employee directly, bypassing invitations.

    Returns:
        Tuple of (employee, temporary_password). ``temporary_password`` is
        None when the caller supplied a password.

    Raises:
        EmployeeAlreadyExistsError: Email already belongs to an employee
        UsernameTakenError: Username already used
    """
    email = User.objects.normalize_email(email)
    if Employee.objects.filter(email__iexact=email).exists():
        raise EmployeeAlreadyExistsError("An employee with this email already exists")

    if Employee.objects.filter(username__iexact=username).exists():
        raise UsernameTakenError("Username already taken")

    temporary_password = None
    if not password:
        temporary_password = secrets.token_hex(16)
        password = temporary_password

    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        user = User.objects.create_user(
            email=email,
            password=password,
            display_name=full_name or username,
        )
    else:
        user.set_password(password)
        user.save(update_fields=['password'])

    employee = Employee.objects.create(
        user=user,
        email=email,
        username=username,
        full_name=full_name or username,
        is_active=True,
        is_admin=True,
    )

    logger.info("Created admin employee %s", employee.id)
    return employee, temporary_password


@transaction.atomic
def reset_employee_password(*, email: str, new_password: str) -> Employee:
    """
    Set a new password for an employee without the email flow.

    Raises:
        EmployeeNotFoundError: No employee has this email
    """
    try:
        employee = (
            Employee.objects
            .select_related('user')
            .get(email__iexact=email)
        )
    except Employee.DoesNotExist:
        raise EmployeeNotFoundError("Employee not found")

    user = employee.user
    user.set_password(new_password)
    user.save(update_fields=['password'])

    logger.info("Password reset for employee %s", employee.id)
    return employee
