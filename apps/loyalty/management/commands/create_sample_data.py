"""
Management command to create sample data for local development.

Usage:
    python manage.py create_sample_data [--clear] [--seed 42]

This creates:
- 1 admin employee and 2 baristas
- 30 customers with loyalty cards
- Three months of purchases and redemptions, so the analytics
  dashboard has history to chart
- 3 gift cards, one of them partially spent
"""

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.employees.models import Employee
from apps.giftcards.models import GiftCard
from apps.giftcards.services import GiftCardService
from apps.loyalty.models import LoyaltyTransaction, Profile, TransactionType
from apps.loyalty.rewards import POINTS_FOR_COFFEE, POINTS_FOR_MEAL

SAMPLE_DOMAIN = 'example.com'
HISTORY_DAYS = 90

FIRST_NAMES = [
    'Ana', 'Luis', 'Sofia', 'Diego', 'Valeria', 'Mateo', 'Camila', 'Jorge',
    'Lucia', 'Pablo', 'Elena', 'Andres', 'Paula', 'Ricardo', 'Daniela',
]
LAST_NAMES = ['Garcia', 'Lopez', 'Hernandez', 'Martinez', 'Ramirez', 'Torres', 'Flores', 'Cruz']


class Command(BaseCommand):
    help = 'Create sample customers, staff, ledger history and gift cards'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete previously generated sample data first',
        )
        parser.add_argument(
            '--customers',
            type=int,
            default=30,
            help='Number of customers to create',
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for reproducible data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        rng = random.Random(options['seed'])

        if options['clear']:
            self.stdout.write('Clearing sample data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        staff = self.create_staff()
        customers = self.create_customers(rng, options['customers'])
        self.create_history(rng, customers, staff)
        self.create_gift_cards(staff)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Staff accounts:')
        self.stdout.write(f'  admin / admin123 (admin@{SAMPLE_DOMAIN})')
        self.stdout.write(f'  barista1 / password123 (barista1@{SAMPLE_DOMAIN})')
        self.stdout.write(f'  barista2 / password123 (barista2@{SAMPLE_DOMAIN})')

    def clear_data(self):
        """Remove every account on the sample domain and the cards they issued."""
        sample_users = User.objects.filter(email__iendswith=f'@{SAMPLE_DOMAIN}')
        GiftCard.objects.filter(created_by__user__in=sample_users).delete()
        # Profiles, ledger rows and employees cascade from the user.
        sample_users.delete()

    def _user(self, email, password, display_name):
        user, _ = User.objects.get_or_create(
            email=email,
            defaults={'display_name': display_name},
        )
        user.set_password(password)
        user.save()
        return user

    def create_staff(self):
        """Create the admin and two baristas."""
        self.stdout.write('  Creating staff...')

        staff = []
        for username, password, full_name, is_admin in [
            ('admin', 'admin123', 'Admin Vigo', True),
            ('barista1', 'password123', 'Carla Barista', False),
            ('barista2', 'password123', 'Tomas Barista', False),
        ]:
            email = f'{username}@{SAMPLE_DOMAIN}'
            user = self._user(email, password, full_name)
            employee, _ = Employee.objects.get_or_create(
                user=user,
                defaults={
                    'email': email,
                    'username': username,
                    'full_name': full_name,
                    'is_admin': is_admin,
                },
            )
            staff.append(employee)

        return staff

    def create_customers(self, rng, count):
        """Create customers whose sign-up dates spread over the history window."""
        self.stdout.write(f'  Creating {count} customers...')

        now = timezone.now()
        customers = []
        for i in range(count):
            full_name = f'{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}'
            email = f'customer{i + 1}@{SAMPLE_DOMAIN}'
            user = self._user(email, 'password123', full_name)
            profile, created = Profile.objects.get_or_create(
                user=user,
                defaults={'full_name': full_name, 'email': email},
            )
            if created:
                joined = now - timedelta(days=rng.randint(1, HISTORY_DAYS), hours=rng.randint(0, 12))
                Profile.objects.filter(pk=profile.pk).update(created_at=joined)
                profile.created_at = joined
                customers.append(profile)

        return customers

    def create_history(self, rng, customers, staff):
        """
        Write backdated purchases and redemptions.

        Each customer gets a habit (days between visits) so the data contains
        regulars, occasional visitors and customers who stopped coming.
        """
        self.stdout.write('  Creating purchase history...')

        now = timezone.now()
        entries = 0
        for profile in customers:
            gap = rng.choice([2, 3, 5, 7, 14, 30])
            stopped = rng.random() < 0.2
            last_visit = now - timedelta(days=rng.randint(35, 80)) if stopped else now

            points = 0
            redeemed = {'coffees': [], 'meals': []}
            visit = profile.created_at
            last_activity = profile.created_at

            while visit < last_visit:
                points += 1
                self._add_entry(profile, rng.choice(staff), TransactionType.PURCHASE, 1, points, None, visit)
                entries += 1
                last_activity = visit

                if points % POINTS_FOR_COFFEE == 0 and rng.random() < 0.7:
                    redeemed['coffees'].append(points)
                    self._add_entry(
                        profile, rng.choice(staff), TransactionType.REDEMPTION_COFFEE,
                        0, points, points, visit + timedelta(minutes=5),
                    )
                    entries += 1
                if points % POINTS_FOR_MEAL == 0 and rng.random() < 0.5:
                    redeemed['meals'].append(points)
                    self._add_entry(
                        profile, rng.choice(staff), TransactionType.REDEMPTION_MEAL,
                        0, points, points, visit + timedelta(minutes=6),
                    )
                    entries += 1

                visit += timedelta(days=max(1, round(rng.gauss(gap, gap / 4))), hours=rng.randint(-3, 3))

            Profile.objects.filter(pk=profile.pk).update(
                points_balance=points,
                total_purchases=points,
                redeemed_rewards=redeemed,
                updated_at=last_activity,
            )

        self.stdout.write(f'    {entries} ledger entries')

    def _add_entry(self, profile, employee, type, points_change, balance_after, threshold, when):
        entry = LoyaltyTransaction.objects.create(
            customer=profile,
            employee=employee,
            type=type,
            points_change=points_change,
            points_balance_after=balance_after,
            reward_points_threshold=threshold,
        )
        LoyaltyTransaction.objects.filter(pk=entry.pk).update(created_at=when)

    def create_gift_cards(self, staff):
        """Issue gift cards through the service so the ledger rows match."""
        self.stdout.write('  Creating gift cards...')

        admin = staff[0]
        GiftCardService.issue(recipient_name='Marta Ruiz', initial_balance=Decimal('500'), created_by=admin)
        GiftCardService.issue(recipient_name='Oficina Centro', initial_balance=Decimal('1000'), created_by=admin)
        spent = GiftCardService.issue(recipient_name='Hugo Vega', initial_balance=Decimal('300'), created_by=admin)
        GiftCardService.charge(gift_card_id=spent.id, amount=Decimal('85.50'), employee=staff[1])
