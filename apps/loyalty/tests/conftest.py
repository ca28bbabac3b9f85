import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.employees.models import Employee
from apps.loyalty.models import Profile


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer_user(db):
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Ana Customer',
    )


@pytest.fixture
def profile(customer_user):
    """Loyalty card with an empty balance."""
    return Profile.objects.create(
        user=customer_user,
        full_name='Ana Customer',
        email='customer@example.com',
    )


@pytest.fixture
def customer_client(customer_user):
    return _client_for(customer_user)


@pytest.fixture
def employee(db):
    user = User.objects.create_user(
        email='barista@example.com',
        password='TestPass123!',
        display_name='Barista',
    )
    return Employee.objects.create(
        user=user,
        email=user.email,
        username='barista',
        full_name='Bea Barista',
    )


@pytest.fixture
def inactive_employee(db):
    user = User.objects.create_user(
        email='former@example.com',
        password='TestPass123!',
    )
    return Employee.objects.create(
        user=user,
        email=user.email,
        username='former',
        is_active=False,
    )


@pytest.fixture
def admin_employee(db):
    user = User.objects.create_user(
        email='manager@example.com',
        password='TestPass123!',
        display_name='Manager',
    )
    return Employee.objects.create(
        user=user,
        email=user.email,
        username='manager',
        full_name='Mia Manager',
        is_admin=True,
    )


@pytest.fixture
def employee_client(employee):
    return _client_for(employee.user)


@pytest.fixture
def inactive_employee_client(inactive_employee):
    return _client_for(inactive_employee.user)


@pytest.fixture
def admin_api_client(admin_employee):
    return _client_for(admin_employee.user)
