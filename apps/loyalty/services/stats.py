"""Dashboard headline numbers."""

from django.db.models import Sum
from django.utils import timezone

from apps.employees.models import Employee, EmployeeInvitation
from apps.loyalty.models import Profile

TOP_CUSTOMERS_LIMIT = 10


def dashboard_stats() -> dict:
    """Counts and totals shown on the admin dashboard."""
    totals = Profile.objects.aggregate(
        points=Sum('points_balance'),
        purchases=Sum('total_purchases'),
    )

    top_customers = (
        Profile.objects
        .order_by('-points_balance', '-total_purchases')
        .values('id', 'full_name', 'email', 'points_balance', 'total_purchases')
        [:TOP_CUSTOMERS_LIMIT]
    )

    return {
        'totalCustomers': Profile.objects.count(),
        'totalEmployees': Employee.objects.count(),
        'activeEmployees': Employee.objects.filter(is_active=True).count(),
        'totalPoints': totals['points'] or 0,
        'totalPurchases': totals['purchases'] or 0,
        'pendingInvitations': EmployeeInvitation.objects.filter(
            used_at__isnull=True,
            expires_at__gt=timezone.now(),
        ).count(),
        'topCustomers': list(top_customers),
    }
