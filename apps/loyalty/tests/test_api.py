import base64
import json
import uuid
import pytest
from datetime import timedelta
from unittest.mock import patch
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from apps.accounts.models import User
from apps.employees.models import EmployeeInvitation
from apps.loyalty.models import Profile, LoyaltyTransaction, TransactionType
from apps.wallet.models import PassRegistration
from apps.wallet.services.apns import reset_provider_token
from apps.wallet.services.google_wallet import reset_access_token


# =============================================================================
# Purchase Tests
# =============================================================================

@pytest.mark.django_db
class TestRecordPurchase:
    """Tests for POST /api/purchase/"""

    def test_purchase_adds_point(self, employee_client, profile, employee):
        response = employee_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['pointsEarned'] == 1
        assert response.data['customer']['points_balance'] == 1
        assert response.data['rewardEarned'] is False
        assert response.data['message'] == 'Purchase recorded! Ana Customer New balance: 1 points'

        profile.refresh_from_db()
        assert profile.points_balance == 1
        assert profile.total_purchases == 1

        entry = LoyaltyTransaction.objects.get(customer=profile)
        assert entry.type == TransactionType.PURCHASE
        assert entry.employee == employee
        assert entry.points_balance_after == 1

    def test_purchase_accepts_user_id(self, employee_client, profile):
        response = employee_client.post(
            reverse('loyalty:purchase'),
            {'userId': str(profile.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK

    def test_tenth_purchase_earns_coffee(self, employee_client, profile):
        profile.points_balance = 9
        profile.save()

        response = employee_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.data['rewardEarned'] is True
        assert response.data['rewardType'] == 'coffee'
        assert response.data['earnedCoffee'] is True
        assert response.data['message'].endswith('🎉 You earned a FREE COFFEE! ☕️')

    def test_fiftieth_purchase_earns_both(self, employee_client, profile):
        profile.points_balance = 49
        profile.save()

        response = employee_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.data['rewardType'] == 'meal'
        assert response.data['earnedMeal'] is True
        assert response.data['earnedCoffee'] is True

    def test_missing_customer_id(self, employee_client):
        response = employee_client.post(reverse('loyalty:purchase'), {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Customer ID is required'

    def test_unknown_customer(self, employee_client):
        response = employee_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(uuid.uuid4())},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Customer not found'

    def test_requires_authentication(self, api_client, profile):
        response = api_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_customer_cannot_record_purchase(self, customer_client, profile):
        response = customer_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'Employee access required'

    def test_inactive_employee_rejected(self, inactive_employee_client, profile):
        response = inactive_employee_client.post(
            reverse('loyalty:purchase'),
            {'customerId': str(profile.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'Employee account is not active'

    def test_wallet_refresh_runs_after_commit(
        self, employee_client, profile, django_capture_on_commit_callbacks
    ):
        profile.points_balance = 24
        profile.save()

        with patch('apps.wallet.services.notifications.sync_loyalty_pass') as mock_sync:
            with django_capture_on_commit_callbacks(execute=True):
                employee_client.post(
                    reverse('loyalty:purchase'),
                    {'customerId': str(profile.id)},
                    format='json',
                )

        mock_sync.assert_called_once_with(profile.id, reward_type='meal')

    def test_broken_google_key_does_not_fail_purchase(
        self, employee_client, profile, settings, django_capture_on_commit_callbacks
    ):
        account = {'client_email': 'wallet@example.com', 'private_key': 'not-a-key'}
        settings.GOOGLE_WALLET_ISSUER_ID = '3388000000012345678'
        settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = 'wallet@example.com'
        settings.GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64 = base64.b64encode(json.dumps(account).encode()).decode()
        reset_access_token()

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            response = employee_client.post(
                reverse('loyalty:purchase'),
                {'customerId': str(profile.id)},
                format='json',
            )

        assert len(callbacks) == 1
        assert response.status_code == status.HTTP_200_OK
        profile.refresh_from_db()
        assert profile.points_balance == 1

    def test_broken_apns_key_does_not_fail_purchase(
        self, employee_client, profile, settings, tmp_path, django_capture_on_commit_callbacks
    ):
        key_path = tmp_path / 'AuthKey_BROKEN.p8'
        key_path.write_text('not a key')
        settings.APNS_KEY_ID = 'BROKEN'
        settings.APNS_TEAM_ID = 'TEAM123456'
        settings.APNS_KEY_PATH = str(key_path)
        reset_provider_token()
        PassRegistration.objects.create(
            device_library_identifier='device-1',
            pass_type_identifier=settings.PASS_TYPE_ID,
            serial_number=str(profile.id),
            push_token='a' * 64,
        )

        with django_capture_on_commit_callbacks(execute=True):
            response = employee_client.post(
                reverse('loyalty:purchase'),
                {'customerId': str(profile.id)},
                format='json',
            )

        assert response.status_code == status.HTTP_200_OK
        profile.refresh_from_db()
        assert profile.points_balance == 1


# =============================================================================
# Redeem Tests
# =============================================================================

@pytest.mark.django_db
class TestRedeemReward:
    """Tests for POST /api/redeem/"""

    def test_redeem_coffee(self, employee_client, profile):
        profile.points_balance = 23
        profile.save()

        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'coffee',
            'points': 20,
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Reward redeemed successfully! coffee at 20 points'
        assert response.data['customer']['points'] == 23
        assert response.data['customer']['redeemedRewards'] == {'coffees': [20], 'meals': []}

        profile.refresh_from_db()
        assert profile.points_balance == 23
        entry = LoyaltyTransaction.objects.get(customer=profile)
        assert entry.type == TransactionType.REDEMPTION_COFFEE
        assert entry.reward_points_threshold == 20
        assert entry.points_change == 0

    def test_redeem_meal_writes_meal_entry(self, employee_client, profile):
        profile.points_balance = 25
        profile.save()

        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'meal',
            'points': 25,
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert LoyaltyTransaction.objects.get(customer=profile).type == TransactionType.REDEMPTION_MEAL

    def test_redeem_twice_rejected(self, employee_client, profile):
        profile.points_balance = 10
        profile.redeemed_rewards = {'coffees': [10], 'meals': []}
        profile.save()

        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'coffee',
            'points': 10,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'This reward has already been redeemed'

    def test_redeem_above_balance_rejected(self, employee_client, profile):
        profile.points_balance = 15
        profile.save()

        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'coffee',
            'points': 20,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Reward not available'

    def test_redeem_off_threshold_rejected(self, employee_client, profile):
        profile.points_balance = 30
        profile.save()

        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'meal',
            'points': 30,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_redeem_invalid_type(self, employee_client, profile):
        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(profile.id),
            'type': 'cake',
            'points': 10,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == "Invalid reward type. Must be 'coffee' or 'meal'"

    def test_redeem_unknown_customer(self, employee_client):
        response = employee_client.post(reverse('loyalty:redeem'), {
            'customerId': str(uuid.uuid4()),
            'type': 'coffee',
            'points': 10,
        }, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Scan Tests
# =============================================================================

@pytest.mark.django_db
class TestScan:
    """Tests for GET /api/scan/"""

    def test_scan_lists_rewards(self, employee_client, profile):
        profile.points_balance = 27
        profile.redeemed_rewards = {'coffees': [10], 'meals': []}
        profile.save()

        response = employee_client.get(reverse('loyalty:scan'), {'userId': str(profile.id)})

        assert response.status_code == status.HTTP_200_OK
        customer = response.data['customer']
        assert customer['name'] == 'Ana Customer'
        assert customer['points'] == 27
        assert customer['availableRewards'] == {'coffees': [20], 'meals': [25]}
        assert customer['redeemedRewards'] == {'coffees': [10], 'meals': []}
        assert customer['stamps'] == {'current': 7, 'remaining': 3}

    def test_scan_missing_user_id(self, employee_client):
        response = employee_client.get(reverse('loyalty:scan'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_scan_unknown(self, employee_client):
        response = employee_client.get(reverse('loyalty:scan'), {'userId': str(uuid.uuid4())})

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Customer card
# =============================================================================

@pytest.mark.django_db
class TestMyCard:
    """Tests for GET /api/loyalty/me/"""

    def test_own_card(self, customer_client, profile):
        response = customer_client.get(reverse('loyalty:my-card'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['profile']['id'] == str(profile.id)
        assert response.data['stamps'] == {'current': 0, 'remaining': 10}

    def test_user_without_card(self, employee_client):
        response = employee_client.get(reverse('loyalty:my-card'))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Admin customers
# =============================================================================

@pytest.mark.django_db
class TestAdminCustomers:
    """Tests for /api/admin/customers/"""

    def test_list_customers(self, admin_api_client, profile):
        response = admin_api_client.get(reverse('loyalty:customers'))

        assert response.status_code == status.HTTP_200_OK
        assert [c['id'] for c in response.data['customers']] == [str(profile.id)]

    def test_list_requires_admin(self, employee_client):
        response = employee_client.get(reverse('loyalty:customers'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'Admin access required'

    def test_create_customer(self, admin_api_client):
        response = admin_api_client.post(reverse('loyalty:customers'), {
            'fullName': '  Walk In  ',
            'email': 'walkin@example.com',
            'phone': '',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        profile = Profile.objects.get(email='walkin@example.com')
        assert profile.full_name == 'Walk In'
        assert profile.phone is None
        assert profile.user.has_usable_password() is False

    def test_create_customer_without_email(self, admin_api_client):
        response = admin_api_client.post(
            reverse('loyalty:customers'),
            {'fullName': 'No Email'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        profile = Profile.objects.get(full_name='No Email')
        assert profile.email is None
        assert profile.user.email.endswith('@vigo-loyalty.local')

    def test_create_customer_duplicate_email(self, admin_api_client, profile):
        response = admin_api_client.post(reverse('loyalty:customers'), {
            'fullName': 'Copy Cat',
            'email': 'CUSTOMER@example.com',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'An account with this email already exists'

    def test_create_customer_requires_name(self, admin_api_client):
        response = admin_api_client.post(
            reverse('loyalty:customers'),
            {'fullName': '   '},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Full name is required'

    def test_delete_customer(self, admin_api_client, profile, customer_user):
        url = f"{reverse('loyalty:customers')}?id={profile.id}"
        response = admin_api_client.delete(url)

        assert response.status_code == status.HTTP_200_OK
        assert not Profile.objects.filter(id=profile.id).exists()
        assert not User.objects.filter(id=customer_user.id).exists()

    def test_delete_unknown_customer(self, admin_api_client):
        url = f"{reverse('loyalty:customers')}?id={uuid.uuid4()}"
        response = admin_api_client.delete(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Dashboard stats and ledger
# =============================================================================

@pytest.mark.django_db
class TestDashboard:

    def test_stats(self, admin_api_client, profile, employee, inactive_employee, admin_employee):
        profile.points_balance = 12
        profile.total_purchases = 12
        profile.save()
        EmployeeInvitation.objects.create(
            email='new@example.com',
            token='a' * 48,
            expires_at=timezone.now() + timedelta(days=7),
        )
        EmployeeInvitation.objects.create(
            email='late@example.com',
            token='b' * 48,
            expires_at=timezone.now() - timedelta(days=1),
        )

        response = admin_api_client.get(reverse('loyalty:stats'))

        stats = response.data['stats']
        assert stats['totalCustomers'] == 1
        assert stats['totalEmployees'] == 3
        assert stats['activeEmployees'] == 2
        assert stats['totalPoints'] == 12
        assert stats['totalPurchases'] == 12
        assert stats['pendingInvitations'] == 1
        assert stats['topCustomers'][0]['id'] == profile.id

    def test_transactions_filters(self, admin_api_client, employee_client, profile, employee):
        for _ in range(2):
            employee_client.post(
                reverse('loyalty:purchase'),
                {'customerId': str(profile.id)},
                format='json',
            )
        profile.refresh_from_db()
        LoyaltyTransaction.objects.create(
            customer=profile,
            type=TransactionType.REDEMPTION_COFFEE,
            points_balance_after=2,
            reward_points_threshold=10,
        )

        response = admin_api_client.get(reverse('loyalty:transactions'), {'type': 'purchase'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total'] == 2
        row = response.data['transactions'][0]
        assert row['customer_name'] == 'Ana Customer'
        assert row['employee_username'] == 'barista'

    def test_transactions_date_range_is_inclusive(self, admin_api_client, profile):
        LoyaltyTransaction.objects.create(
            customer=profile,
            type=TransactionType.PURCHASE,
            points_change=1,
            points_balance_after=1,
        )
        today = timezone.localdate().isoformat()

        response = admin_api_client.get(
            reverse('loyalty:transactions'),
            {'startDate': today, 'endDate': today},
        )

        assert response.data['total'] == 1

    def test_transactions_bad_range(self, admin_api_client):
        response = admin_api_client.get(
            reverse('loyalty:transactions'),
            {'startDate': '2024-02-01', 'endDate': '2024-01-01'},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
