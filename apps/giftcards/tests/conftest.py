import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.employees.models import Employee
from apps.giftcards.services import GiftCardService


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


@pytest.fixture
def employee(db):
    return _make_employee('barista@example.com', 'barista', full_name='Bea Barista')


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


@pytest.fixture
def gift_card(employee):
    """Active card with 500 MXN."""
    return GiftCardService.issue(
        recipient_name='Lucia Gomez',
        initial_balance=Decimal('500.00'),
        created_by=employee,
    )


@pytest.fixture
def inactive_gift_card(employee):
    card = GiftCardService.issue(
        recipient_name='Old Card',
        initial_balance=Decimal('100.00'),
        created_by=employee,
    )
    card.is_active = False
    card.save(update_fields=['is_active'])
    return card
