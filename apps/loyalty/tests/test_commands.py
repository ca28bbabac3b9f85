import pytest
from io import StringIO
from django.core.management import call_command
from django.db.models import Count, Q
from apps.employees.models import Employee
from apps.giftcards.models import GiftCard
from apps.loyalty.models import Profile, TransactionType


@pytest.mark.django_db
class TestCreateSampleData:

    def test_creates_consistent_data(self):
        call_command('create_sample_data', customers=5, seed=7, stdout=StringIO())

        assert Employee.objects.count() == 3
        assert Employee.objects.filter(is_admin=True).count() == 1
        assert Profile.objects.count() == 5
        assert GiftCard.objects.count() == 3

        profiles = Profile.objects.annotate(
            purchases=Count('transactions', filter=Q(transactions__type=TransactionType.PURCHASE)),
        )
        for profile in profiles:
            assert profile.points_balance == profile.purchases
            assert profile.total_purchases == profile.purchases

    def test_clear_replaces_sample_data(self):
        call_command('create_sample_data', customers=4, seed=1, stdout=StringIO())
        call_command('create_sample_data', customers=4, seed=1, clear=True, stdout=StringIO())

        assert Profile.objects.count() == 4
        assert GiftCard.objects.count() == 3
