"""
Customer behaviour predictions: churn risk, lifetime value and next visit.

All functions are pure; they take ``CustomerData`` snapshots plus ledger
rows (dicts with ``customer_id``, ``created_at`` and ``type``) and an
optional ``now`` for reproducible results.
"""

from collections import defaultdict
from datetime import timedelta
from statistics import fmean, pstdev

from django.utils import timezone

from apps.loyalty.models import TransactionType
from .analytics import days_between

DEFAULT_PURCHASE_INTERVAL_DAYS = 14
OVERDUE_NEXT_PURCHASE_DAYS = 3
CLV_PROJECTION_MONTHS = 12

CHURN_LEVELS = (
    (60, 90, 'No activity in over 60 days'),
    (30, 60, 'No activity in 30-60 days'),
    (14, 30, 'No activity in 14-30 days'),
)
RECENTLY_ACTIVE = (10, 'Recently active')
CHURN_INTERVAL_PENALTY = 20
CHURN_REPORT_MIN_SCORE = 30


def _timestamps_by_customer(transactions, kind=None):
    grouped = defaultdict(list)
    for row in transactions:
        if kind is None or row['type'] == kind:
            grouped[row['customer_id']].append(row['created_at'])
    for timestamps in grouped.values():
        timestamps.sort()
    return grouped


def _intervals(timestamps):
    """Whole days between consecutive timestamps (sorted ascending)."""
    return [days_between(later, earlier) for earlier, later in zip(timestamps, timestamps[1:])]


# =============================================================================
# Churn
# =============================================================================

def churn_risk(customers, transactions, now=None):
    """
    Score each customer's risk of leaving, highest first.

    The base score follows inactivity (90 after 60 days, 60 after 30, 30
    after 14, else 10). Customers idle for more than twice their own
    average gap between visits get 20 more, capped at 100.

    Returns:
        list[dict]: ``customer_id``, ``risk_score``, ``probability``,
        ``days_inactive`` and ``reason``.
    """
    now = now or timezone.now()
    history = _timestamps_by_customer(transactions)

    risks = []
    for customer in customers:
        timestamps = history.get(customer.id, [])
        last_seen = timestamps[-1] if timestamps else customer.created_at
        days_inactive = days_between(now, last_seen)

        score, reason = RECENTLY_ACTIVE
        for threshold, level_score, level_reason in CHURN_LEVELS:
            if days_inactive > threshold:
                score, reason = level_score, level_reason
                break

        gaps = _intervals(timestamps)
        usual_gap = fmean(gaps) if gaps else DEFAULT_PURCHASE_INTERVAL_DAYS
        if days_inactive > usual_gap * 2:
            score = min(100, score + CHURN_INTERVAL_PENALTY)
            reason += ' (longer than usual interval)'

        risks.append({
            'customer_id': customer.id,
            'risk_score': score,
            'probability': score / 100,
            'days_inactive': days_inactive,
            'reason': reason,
        })

    risks.sort(key=lambda risk: risk['risk_score'], reverse=True)
    return risks


# =============================================================================
# Lifetime value
# =============================================================================

def customer_lifetime_value(customers, transactions, average_purchase_value=1.0, now=None):
    """
    Current points plus a year of projected purchases, in currency units.

    The projection uses the customer's purchases per 30-day month since
    the card was created (at least one month).
    """
    now = now or timezone.now()
    purchases = _timestamps_by_customer(transactions, kind=TransactionType.PURCHASE)

    values = []
    for customer in customers:
        total_purchases = customer.total_purchases or len(purchases.get(customer.id, []))
        months_active = max(1, days_between(now, customer.created_at) / 30)

        predicted_purchases = total_purchases / months_active * CLV_PROJECTION_MONTHS
        predicted_value = predicted_purchases * average_purchase_value
        clv = customer.points_balance * average_purchase_value + predicted_value

        values.append({
            'customer_id': customer.id,
            'clv': round(clv, 2),
            'predicted_purchases': round(predicted_purchases, 1),
            'predicted_value': round(predicted_value, 2),
        })

    values.sort(key=lambda value: value['clv'], reverse=True)
    return values


# =============================================================================
# Next purchase
# =============================================================================

def _confidence(gaps, mean_gap):
    if mean_gap <= 0:
        return 'low'
    spread = pstdev(gaps) if len(gaps) > 1 else mean_gap
    variation = spread / mean_gap
    if variation < 0.3 and len(gaps) >= 3:
        return 'high'
    if variation < 0.5 and len(gaps) >= 2:
        return 'medium'
    return 'low'


def predict_next_purchase(customers, transactions, now=None):
    """
    Expected date of each customer's next purchase.

    Customers with fewer than two purchases get the default two-week
    interval at low confidence. Customers already past their average gap
    are expected within three days.

    Returns:
        list[dict]: ``customer_id``, ``predicted_date`` (ISO date),
        ``confidence`` and ``days_until`` (at least 1).
    """
    now = now or timezone.now()
    purchases = _timestamps_by_customer(transactions, kind=TransactionType.PURCHASE)

    predictions = []
    for customer in customers:
        timestamps = purchases.get(customer.id, [])

        if len(timestamps) < 2:
            interval = DEFAULT_PURCHASE_INTERVAL_DAYS
            confidence = 'low'
        else:
            gaps = _intervals(timestamps)
            mean_gap = fmean(gaps)
            since_last = days_between(now, timestamps[-1])
            interval = (
                OVERDUE_NEXT_PURCHASE_DAYS if since_last >= mean_gap
                else mean_gap - since_last
            )
            confidence = _confidence(gaps, mean_gap)

        predicted = now + timedelta(days=interval)
        if timezone.is_aware(predicted):
            predicted = timezone.localtime(predicted)
        predictions.append({
            'customer_id': customer.id,
            'predicted_date': predicted.date().isoformat(),
            'confidence': confidence,
            'days_until': max(1, round(interval)),
        })

    return predictions
