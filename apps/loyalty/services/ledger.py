"""Transaction ledger queries."""

from datetime import date, datetime, time, timedelta
from typing import Optional
from uuid import UUID

from django.utils import timezone

from apps.loyalty.models import LoyaltyTransaction


def day_bounds(start_date: Optional[date], end_date: Optional[date]):
    """Aware datetimes covering whole days; ``end_date`` is inclusive."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(start_date, time.min), tz) if start_date else None
    end = (
        timezone.make_aware(datetime.combine(end_date + timedelta(days=1), time.min), tz)
        if end_date else None
    )
    return start, end


def list_transactions(
    *,
    type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    customer_id: Optional[UUID] = None,
    employee_id: Optional[UUID] = None
):
    """Ledger rows matching the filters, newest first."""
    queryset = LoyaltyTransaction.objects.select_related('customer', 'employee')

    if type:
        queryset = queryset.filter(type=type)

    start, end = day_bounds(start_date, end_date)
    if start:
        queryset = queryset.filter(created_at__gte=start)
    if end:
        queryset = queryset.filter(created_at__lt=end)

    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if employee_id:
        queryset = queryset.filter(employee_id=employee_id)

    return queryset.order_by('-created_at')
