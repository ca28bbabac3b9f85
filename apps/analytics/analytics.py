"""
Analytics Module
=================

This module provides the report queries behind the admin analytics
dashboard. It aggregates the loyalty ledger, customer profiles and gift card
transactions into per-period series for charts.

Classes:
    CustomerData: Snapshot of one loyalty card used by the models in
        ``segmentation`` and ``prediction``.
    AnalyticsQueries: Static methods for the report endpoints.

Key Features:
    - Ledger activity per day, ISO week or month
    - Customer growth with running totals
    - Reward redemptions with per-threshold breakdown
    - Employee performance rankings
    - Gift card usage per period

Example:
    Purchases per week for the last quarter::

        from apps.analytics.analytics import AnalyticsQueries

        report = AnalyticsQueries.transactions(
            start_date=date.today() - timedelta(days=90),
            end_date=date.today(),
            group_by='week',
        )
        for row in report['data']:
            print(f"{row['date']}: {row['purchases']} purchases")

Note:
    This module is read-only and doesn't modify any data. When the ledger
    is empty (cards migrated from before transactions were logged), the
    transaction and redemption reports fall back to estimates built from
    the profiles themselves and say so in a ``note``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from apps.employees.models import Employee
from apps.giftcards.models import GiftCardTransaction
from apps.loyalty.models import LoyaltyTransaction, Profile, TransactionType
from apps.loyalty.rewards import normalize_redeemed
from apps.loyalty.services.ledger import day_bounds
from .exceptions import InvalidDateRangeError, InvalidGroupingError

GROUPINGS = ('day', 'week', 'month')

ESTIMATED_TRANSACTIONS_NOTE = (
    'Estimated from customer profiles (historical data before transaction logging)'
)

REDEMPTION_TYPES = (TransactionType.REDEMPTION_COFFEE, TransactionType.REDEMPTION_MEAL)


def period_key(moment: datetime, group_by: str = 'day') -> str:
    """
    Bucket label for a timestamp in the current timezone.

    ``day`` gives ``YYYY-MM-DD``, ``week`` the ISO week ``YYYY-Www`` and
    ``month`` gives ``YYYY-MM``.
    """
    if group_by not in GROUPINGS:
        raise InvalidGroupingError(
            f"Invalid grouping: '{group_by}'. Valid options: {', '.join(GROUPINGS)}"
        )

    local = timezone.localtime(moment) if timezone.is_aware(moment) else moment
    if group_by == 'week':
        return local.strftime('%G-W%V')
    if group_by == 'month':
        return local.strftime('%Y-%m')
    return local.strftime('%Y-%m-%d')


def validate_range(start_date, end_date):
    if start_date and end_date and start_date > end_date:
        raise InvalidDateRangeError('Start date must be before end date')


def filter_created(queryset, start_date=None, end_date=None):
    """Restrict ``created_at`` to whole days, ``end_date`` inclusive."""
    validate_range(start_date, end_date)
    start, end = day_bounds(start_date, end_date)
    if start:
        queryset = queryset.filter(created_at__gte=start)
    if end:
        queryset = queryset.filter(created_at__lt=end)
    return queryset


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days elapsed, rounded down."""
    return (later - earlier) // timedelta(days=1)


def display_name(full_name, email):
    return full_name or email or 'Unknown'


# =============================================================================
# Customer snapshots
# =============================================================================

@dataclass
class CustomerData:
    """A loyalty card reduced to the numbers the models look at."""

    id: str
    customer_name: str
    points_balance: int
    total_purchases: int
    created_at: datetime
    last_transaction_at: Optional[datetime] = None

    @property
    def last_activity_at(self) -> datetime:
        return self.last_transaction_at or self.created_at


def load_customers():
    """Every profile with the timestamp of its most recent ledger entry."""
    last_seen = {}
    rows = LoyaltyTransaction.objects.order_by('-created_at').values_list('customer_id', 'created_at')
    for customer_id, created_at in rows:
        last_seen.setdefault(customer_id, created_at)

    customers = []
    for profile in Profile.objects.order_by('created_at'):
        customers.append(CustomerData(
            id=str(profile.id),
            customer_name=display_name(profile.full_name, profile.email),
            points_balance=profile.points_balance or 0,
            total_purchases=profile.total_purchases or 0,
            created_at=profile.created_at,
            last_transaction_at=last_seen.get(profile.id),
        ))
    return customers


def load_transactions():
    """Ledger rows as plain dicts, oldest first."""
    rows = LoyaltyTransaction.objects.order_by('created_at').values('customer_id', 'created_at', 'type')
    return [
        {'customer_id': str(row['customer_id']), 'created_at': row['created_at'], 'type': row['type']}
        for row in rows
    ]


# =============================================================================
# Reports
# =============================================================================

class AnalyticsQueries:
    """
    Report queries for the admin analytics endpoints.

    Methods:
        transactions: Ledger activity per period.
        estimated_purchases: Purchase timestamps spread over card lifetimes.
        customer_growth: New and cumulative customers per period.
        redemptions: Coffee and meal redemptions with threshold breakdown.
        employee_performance: Ledger entries per employee.
        gift_card_transactions: Gift card charge volume per period.

    Note:
        All methods return plain dictionaries or lists, not Django objects,
        making them suitable for JSON serialization in API responses.
    """

    @staticmethod
    def transactions(start_date=None, end_date=None, group_by='day'):
        """
        Count ledger entries per period.

        Args:
            start_date (date, optional): First day to include.
            end_date (date, optional): Last day to include.
            group_by (str, optional): 'day', 'week' or 'month'.

        Returns:
            dict: ``data`` (list of ``{date, purchases, redemptions, total}``
            sorted by period), ``grouped`` (the same counts keyed by period)
            and, when estimated from profiles, ``note``.

        Note:
            Every entry that is not a purchase counts as a redemption.
        """
        queryset = filter_created(LoyaltyTransaction.objects.all(), start_date, end_date)
        entries = list(queryset.order_by('created_at').values_list('created_at', 'type'))

        note = None
        if not entries:
            estimated = AnalyticsQueries.estimated_purchases(start_date, end_date)
            entries = [(moment, TransactionType.PURCHASE) for moment in estimated]
            if entries:
                note = ESTIMATED_TRANSACTIONS_NOTE

        grouped = {}
        for created_at, kind in entries:
            key = period_key(created_at, group_by)
            bucket = grouped.setdefault(key, {'purchases': 0, 'redemptions': 0, 'total': 0})
            if kind == TransactionType.PURCHASE:
                bucket['purchases'] += 1
            else:
                bucket['redemptions'] += 1
            bucket['total'] += 1

        result = {
            'data': [{'date': key, **grouped[key]} for key in sorted(grouped)],
            'grouped': grouped,
        }
        if note:
            result['note'] = note
        return result

    @staticmethod
    def estimated_purchases(start_date=None, end_date=None):
        """
        Spread each card's purchases evenly between creation and last update.

        Used for cards that predate the ledger. The ``n``-th of ``k``
        purchases is placed at ``created_at + span * n / k``.
        """
        start, end = day_bounds(start_date, end_date)
        moments = []
        for profile in Profile.objects.filter(total_purchases__gt=0):
            purchases = profile.total_purchases
            span = profile.updated_at - profile.created_at
            for index in range(purchases):
                moment = profile.created_at + span * index / purchases
                if start and moment < start:
                    continue
                if end and moment >= end:
                    continue
                moments.append(moment)
        return sorted(moments)

    @staticmethod
    def customer_growth(start_date=None, end_date=None, group_by='day'):
        """
        New customers per period with a running total.

        The running total only counts customers inside the requested range.
        """
        profiles = filter_created(Profile.objects.all(), start_date, end_date)
        created = list(profiles.order_by('created_at').values_list('created_at', flat=True))

        grouped = {}
        for created_at in created:
            key = period_key(created_at, group_by)
            grouped[key] = grouped.get(key, 0) + 1

        data = []
        cumulative = 0
        for key in sorted(grouped):
            cumulative += grouped[key]
            data.append({'date': key, 'newCustomers': grouped[key], 'totalCustomers': cumulative})

        return {'data': data, 'total': len(created)}

    @staticmethod
    def redemptions(start_date=None, end_date=None):
        """
        Redeemed rewards by kind and by points threshold.

        Falls back to the thresholds recorded on each profile when the
        ledger holds no redemptions.
        """
        queryset = filter_created(
            LoyaltyTransaction.objects.filter(type__in=REDEMPTION_TYPES), start_date, end_date
        )
        entries = list(queryset.values_list('type', 'reward_points_threshold'))

        breakdown = {}

        def count(threshold, field):
            bucket = breakdown.setdefault(threshold, {'coffee': 0, 'meal': 0})
            bucket[field] += 1

        if entries:
            for kind, threshold in entries:
                count(threshold or 0, 'coffee' if kind == TransactionType.REDEMPTION_COFFEE else 'meal')
        else:
            for redeemed in Profile.objects.values_list('redeemed_rewards', flat=True):
                redeemed = normalize_redeemed(redeemed)
                for threshold in redeemed['coffees']:
                    count(threshold, 'coffee')
                for threshold in redeemed['meals']:
                    count(threshold, 'meal')

        coffee = sum(bucket['coffee'] for bucket in breakdown.values())
        meal = sum(bucket['meal'] for bucket in breakdown.values())
        return {
            'coffee': coffee,
            'meal': meal,
            'total': coffee + meal,
            'breakdown': [
                {'threshold': threshold, **breakdown[threshold]}
                for threshold in sorted(breakdown)
            ],
        }

    @staticmethod
    def employee_performance(start_date=None, end_date=None, employee_id=None):
        """
        Ledger entries recorded by each employee, busiest first.

        Entries without an employee are ignored unless ``employee_id``
        narrows the report to one employee.
        """
        queryset = filter_created(LoyaltyTransaction.objects.all(), start_date, end_date)
        if employee_id:
            queryset = queryset.filter(employee_id=employee_id)
        else:
            queryset = queryset.filter(employee__isnull=False)

        entries = list(queryset.values_list('employee_id', 'type'))

        stats = {}
        for staff_id, kind in entries:
            bucket = stats.setdefault(staff_id, {'purchases': 0, 'redemptions': 0, 'total': 0})
            if kind == TransactionType.PURCHASE:
                bucket['purchases'] += 1
            else:
                bucket['redemptions'] += 1
            bucket['total'] += 1

        names = {
            staff.id: staff.full_name or staff.username or staff.email
            for staff in Employee.objects.filter(id__in=list(stats))
        }
        employees = [
            {
                'employee_id': str(staff_id),
                'employee_name': names.get(staff_id) or 'Unknown',
                **counts,
            }
            for staff_id, counts in stats.items()
        ]
        employees.sort(key=lambda row: row['total'], reverse=True)

        return {'employees': employees, 'total': len(entries)}

    @staticmethod
    def gift_card_transactions(start_date=None, end_date=None, group_by='day'):
        """
        Gift card transaction count and volume per period.

        Amounts are summed as absolute values so charges and issues both
        count as volume.
        """
        queryset = filter_created(GiftCardTransaction.objects.all(), start_date, end_date)
        entries = queryset.order_by('created_at').values_list('created_at', 'amount_mxn')

        totals = {}
        for created_at, amount in entries:
            key = period_key(created_at, group_by)
            count, total = totals.get(key, (0, Decimal('0.00')))
            totals[key] = (count + 1, total + abs(amount or Decimal('0.00')))

        grouped = {}
        for key, (count, total) in totals.items():
            grouped[key] = {
                'transactions': count,
                'totalAmount': float(total),
                'averageAmount': round(float(total) / count, 2),
            }

        return {
            'data': [{'date': key, **grouped[key]} for key in sorted(grouped)],
            'grouped': grouped,
        }
