"""
Employees app services layer.

Business logic for staff accounts: login, invitations and admin management.
"""

from .exceptions import (
    EmployeesServiceError,
    InvalidEmployeeCredentialsError,
    EmployeeNotFoundError,
    EmployeeInactiveError,
    InvitationInvalidError,
    InvitationExpiredError,
    UsernameTakenError,
    EmployeeAlreadyExistsError,
    SelfProtectionError,
)

from .employee_auth import (
    authenticate_employee,
    check_employee,
)

from .invitations import (
    build_invite_url,
    create_invitation,
    validate_invitation,
    accept_invitation,
    list_invitations,
)

from .employee_management import (
    list_employees,
    update_employee,
    deactivate_employee,
    create_admin,
    reset_employee_password,
)


__all__ = [
    # Exceptions
    'EmployeesServiceError',
    'InvalidEmployeeCredentialsError',
    'EmployeeNotFoundError',
    'EmployeeInactiveError',
    'InvitationInvalidError',
    'InvitationExpiredError',
    'UsernameTakenError',
    'EmployeeAlreadyExistsError',
    'SelfProtectionError',

    # Authentication
    'authenticate_employee',
    'check_employee',

    # Invitations
    'build_invite_url',
    'create_invitation',
    'validate_invitation',
    'accept_invitation',
    'list_invitations',

    # Management
    'list_employees',
    'update_employee',
    'deactivate_employee',
    'create_admin',
    'reset_employee_password',
]
