import pytest
from datetime import timedelta
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.employees.models import Employee
from apps.loyalty.models import LoyaltyTransaction, Profile, TransactionType


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


# =============================================================================
# Staff
# =============================================================================

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
def employee(db):
    user = User.objects.create_user(
        email='barista@example.com',
        password='TestPass123!',
    )
    return Employee.objects.create(
        user=user,
        email=user.email,
        username='barista',
        full_name='Bea Barista',
    )


@pytest.fixture
def admin_api_client(admin_employee):
    return _client_for(admin_employee.user)


@pytest.fixture
def employee_client(employee):
    return _client_for(employee.user)


@pytest.fixture
def customer_client(db):
    user = User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
    )
    return _client_for(user)


# =============================================================================
# Customers and ledger
# =============================================================================

@pytest.fixture
def make_profile(db):
    """Create a loyalty card with backdated timestamps."""
    counter = {'n': 0}

    def make(*, days_old=0, updated_days_ago=None, points=0, purchases=0, redeemed=None, name=None):
        counter['n'] += 1
        email = f"customer{counter['n']}@example.com"
        user = User.objects.create_user(email=email, password='TestPass123!')
        profile = Profile.objects.create(
            user=user,
            full_name=name or f"Customer {counter['n']}",
            email=email,
            points_balance=points,
            total_purchases=purchases,
            redeemed_rewards=redeemed or {'coffees': [], 'meals': []},
        )
        now = timezone.now()
        updated_days_ago = days_old if updated_days_ago is None else updated_days_ago
        Profile.objects.filter(pk=profile.pk).update(
            created_at=now - timedelta(days=days_old),
            updated_at=now - timedelta(days=updated_days_ago),
        )
        profile.refresh_from_db()
        return profile

    return make


@pytest.fixture
def make_transaction(db):
    """Create a ledger row, optionally backdated."""

    def make(profile, *, type=TransactionType.PURCHASE, days_ago=0, employee=None, threshold=None, when=None):
        entry = LoyaltyTransaction.objects.create(
            customer=profile,
            employee=employee,
            type=type,
            points_change=1 if type == TransactionType.PURCHASE else 0,
            points_balance_after=profile.points_balance,
            reward_points_threshold=threshold,
        )
        when = when or timezone.now() - timedelta(days=days_ago)
        LoyaltyTransaction.objects.filter(pk=entry.pk).update(created_at=when)
        entry.refresh_from_db()
        return entry

    return make
