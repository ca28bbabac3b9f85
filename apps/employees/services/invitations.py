"""
Employee invitation service.

Invitations are single-use tokens sent to an email address. Accepting one
creates the employee account in a single transaction.
"""

import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.employees.models import Employee, EmployeeInvitation
from apps.wallet.services.base_url import get_base_url

from .exceptions import (
    EmployeeAlreadyExistsError,
    InvitationInvalidError,
    InvitationExpiredError,
    UsernameTakenError,
)

User = get_user_model()

logger = logging.getLogger(__name__)


def build_invite_url(token: str) -> str:
    """Public URL the invited person opens to accept the invitation."""
    return f"{get_base_url()}/auth/employee/invite/{token}"


@transaction.atomic
def create_invitation(
    *,
    email: str,
    invited_by: Employee = None,
    max_retries: int = 5
) -> EmployeeInvitation:
    """
    Create an invitation for an email that is not yet an employee.

    Args:
        email: Address to invite
        invited_by: Admin issuing the invitation
        max_retries: Attempts to generate a unique token

    Returns:
        The new EmployeeInvitation

    Raises:
        EmployeeAlreadyExistsError: An employee already has this email
        RuntimeError: If no unique token could be generated
    """
    email = User.objects.normalize_email(email)
    if Employee.objects.filter(email__iexact=email).exists():
        raise EmployeeAlreadyExistsError("An employee with this email already exists")

    ttl = timedelta(days=settings.EMPLOYEE_INVITATION_TTL_DAYS)

    for attempt in range(max_retries):
        try:
            with transaction.atomic():
                invitation = EmployeeInvitation.objects.create(
                    email=email,
                    token=secrets.token_hex(24),
                    expires_at=timezone.now() + ttl,
                    invited_by=invited_by,
                )
        except IntegrityError:
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique invitation token after {max_retries} attempts"
                )
            continue

        logger.info("Created employee invitation %s for %s", invitation.id, email)
        return invitation

    raise RuntimeError("Unexpected error in invitation token generation")


def validate_invitation(*, token: str) -> EmployeeInvitation:
    """
    Return the unused, unexpired invitation for a token.

    Raises:
        InvitationInvalidError: Unknown or already used token
        InvitationExpiredError: Invitation has expired
    """
    invitation = EmployeeInvitation.objects.filter(token=token, used_at__isnull=True).first()
    if invitation is None:
        raise InvitationInvalidError("Invalid or expired invitation")

    if invitation.is_expired:
        raise InvitationExpiredError("Invitation has expired")

    return invitation


@transaction.atomic
def accept_invitation(
    *,
    token: str,
    username: str,
    password: str,
    full_name: str
) -> Employee:
    """
    Create an active, non-admin employee from an invitation.

    An existing customer account with the invited email is promoted instead
    of duplicated; its password is replaced by the one chosen here.

    Raises:
        InvitationInvalidError: Unknown or already used token
        InvitationExpiredError: Invitation has expired
        UsernameTakenError: Another employee has the username
        EmployeeAlreadyExistsError: The email already belongs to an employee
    """
    invitation = (
        EmployeeInvitation.objects
        .select_for_update()
        .filter(token=token, used_at__isnull=True)
        .first()
    )
    if invitation is None:
        raise InvitationInvalidError("Invalid or expired invitation")

    if invitation.is_expired:
        raise InvitationExpiredError("Invitation has expired")

    if Employee.objects.filter(username__iexact=username).exists():
        raise UsernameTakenError("Username already taken")

    if Employee.objects.filter(email__iexact=invitation.email).exists():
        raise EmployeeAlreadyExistsError("An employee with this email already exists")

    user = User.objects.filter(email__iexact=invitation.email).first()
    if user is None:
        user = User.objects.create_user(
            email=invitation.email,
            password=password,
            display_name=full_name,
        )
    else:
        user.set_password(password)
        user.save(update_fields=['password'])

    employee = Employee.objects.create(
        user=user,
        email=invitation.email,
        username=username,
        full_name=full_name,
        is_active=True,
        is_admin=False,
    )

    invitation.used_at = timezone.now()
    invitation.save(update_fields=['used_at'])

    logger.info("Invitation %s accepted by employee %s", invitation.id, employee.id)
    return employee


def list_invitations():
    """All invitations, newest first."""
    return EmployeeInvitation.objects.select_related('invited_by').order_by('-created_at')
