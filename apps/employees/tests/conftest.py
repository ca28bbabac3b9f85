import pytest
from datetime import timedelta
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.employees.models import Employee, EmployeeInvitation


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def _make_employee(email, username, **extra):
    user = User.objects.create_user(email=email, password='TestPass123!')
    return Employee.objects.create(user=user, email=email, username=username, **extra)


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


# =============================================================================
# Staff
# =============================================================================

@pytest.fixture
def employee(db):
    return _make_employee('barista@example.com', 'barista', full_name='Bea Barista')


@pytest.fixture
def inactive_employee(db):
    return _make_employee('former@example.com', 'former', full_name='Fred Former', is_active=False)


@pytest.fixture
def admin_employee(db):
    return _make_employee('manager@example.com', 'manager', full_name='Mia Manager', is_admin=True)


@pytest.fixture
def employee_client(employee):
    return _client_for(employee.user)


@pytest.fixture
def admin_api_client(admin_employee):
    return _client_for(admin_employee.user)


@pytest.fixture
def customer_client(db):
    user = User.objects.create_user(email='customer@example.com', password='TestPass123!')
    return _client_for(user)


# =============================================================================
# Invitations
# =============================================================================

@pytest.fixture
def invitation(admin_employee):
    """Pending invitation for a new barista."""
    return EmployeeInvitation.objects.create(
        email='newbarista@example.com',
        token='a' * 48,
        expires_at=timezone.now() + timedelta(days=7),
        invited_by=admin_employee,
    )


@pytest.fixture
def expired_invitation(admin_employee):
    return EmployeeInvitation.objects.create(
        email='late@example.com',
        token='b' * 48,
        expires_at=timezone.now() - timedelta(hours=1),
        invited_by=admin_employee,
    )
