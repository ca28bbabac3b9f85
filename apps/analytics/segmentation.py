"""
Customer segmentation.

Three interchangeable methods assign every customer one of ``vip``,
``regular``, ``new``, ``at_risk`` or ``churned``:

    rules   Inactivity and age thresholds plus a top-decile VIP cut.
    kmeans  Clusters on normalized points, purchases, age and inactivity.
    rfm     Recency / frequency / monetary scores from 1 to 5.

Each function takes a list of ``CustomerData`` and returns one dict per
customer with ``customer_id``, ``segment``, ``engagement_score`` and
``last_activity_days``.
"""

import math
from statistics import fmean

from django.utils import timezone

from .analytics import days_between
from .exceptions import InvalidMethodError

SEGMENTS = ('vip', 'regular', 'new', 'at_risk', 'churned')

SEGMENT_DESCRIPTIONS = {
    'vip': 'Your top 10% most valuable customers',
    'regular': 'Active customers who visit often',
    'new': 'Recently joined in the last 30 days',
    'at_risk': "Haven't visited in 30-60 days",
    'churned': "Haven't visited in over 60 days",
}

SEGMENTATION_METHODS = ('rules', 'kmeans', 'rfm')

AT_RISK_DAYS = 30
CHURNED_DAYS = 60
NEW_CUSTOMER_DAYS = 30

KMEANS_CLUSTERS = 3
KMEANS_MAX_ITERATIONS = 100


def quantile(values, p):
    """
    Sample quantile of ``values``.

    When ``len * p`` falls between two ranks the higher rank is taken; when
    it lands exactly on a rank of an even-sized sample the two neighbours
    are averaged.
    """
    ordered = sorted(values)
    if p >= 1:
        return ordered[-1]
    if p <= 0:
        return ordered[0]

    index = len(ordered) * p
    if index % 1:
        return ordered[math.ceil(index) - 1]
    index = int(index)
    if len(ordered) % 2 == 0:
        return (ordered[index - 1] + ordered[index]) / 2
    return ordered[index]


def top_decile_threshold(values):
    """VIP cut: 90th percentile, or 80 % of the maximum for small samples."""
    if len(values) >= 10:
        return quantile(values, 0.9)
    return max(values, default=0) * 0.8


def engagement_score(points_balance, total_purchases, inactive_days):
    """0-100 blend: up to 50 for points, 30 for purchases, 20 for recency."""
    points_score = min(50, points_balance / 100 * 50)
    purchase_score = min(30, total_purchases / 20 * 30)
    recency_score = max(0, 20 - inactive_days / 30 * 20)
    return round(points_score + purchase_score + recency_score)


def _segment(customer, segment, score, inactive_days):
    return {
        'customer_id': customer.id,
        'segment': segment,
        'engagement_score': score,
        'last_activity_days': inactive_days,
    }


# =============================================================================
# Rule based
# =============================================================================

def rule_based_segmentation(customers, now=None):
    now = now or timezone.now()

    points_threshold = top_decile_threshold([c.points_balance for c in customers])
    purchase_threshold = top_decile_threshold([c.total_purchases for c in customers])

    segments = []
    for customer in customers:
        age_days = days_between(now, customer.created_at)
        inactive_days = days_between(now, customer.last_activity_at)

        if inactive_days > CHURNED_DAYS:
            segment = 'churned'
        elif inactive_days > AT_RISK_DAYS:
            segment = 'at_risk'
        elif age_days <= NEW_CUSTOMER_DAYS:
            segment = 'new'
        elif (customer.points_balance >= points_threshold
              or customer.total_purchases >= purchase_threshold):
            segment = 'vip'
        else:
            segment = 'regular'

        score = engagement_score(customer.points_balance, customer.total_purchases, inactive_days)
        segments.append(_segment(customer, segment, score, inactive_days))

    return segments


# =============================================================================
# K-means
# =============================================================================

def _distance(a, b):
    return sum((x - y) ** 2 for x, y in zip(a, b))


def _value(row):
    # Points and purchases count for a customer, inactivity against.
    return row[0] + row[1] - row[3]


def kmeans(rows, k, max_iterations=KMEANS_MAX_ITERATIONS):
    """
    Lloyd's algorithm with deterministic seeding.

    Initial centroids are spread evenly over the rows ranked by value, and
    the resulting clusters are relabelled so that cluster 0 holds the most
    valuable customers and cluster ``k - 1`` the least valuable.

    Seeding is not random (no k-means++), so the clusters can differ from
    those a library k-means such as scikit-learn would find for the same
    rows. Repeated runs over the same rows always give the same labels.

    Returns:
        list[int]: Cluster label for each row.
    """
    ranked = sorted(range(len(rows)), key=lambda i: _value(rows[i]), reverse=True)
    step = (len(rows) - 1) / (k - 1) if k > 1 else 0
    centroids = [list(rows[ranked[round(step * c)]]) for c in range(k)]

    labels = [0] * len(rows)
    for _ in range(max_iterations):
        new_labels = [
            min(range(k), key=lambda c: _distance(row, centroids[c]))
            for row in rows
        ]

        for c in range(k):
            members = [rows[i] for i, label in enumerate(new_labels) if label == c]
            if members:
                centroids[c] = [fmean(column) for column in zip(*members)]

        if new_labels == labels:
            break
        labels = new_labels

    order = sorted(range(k), key=lambda c: _value(centroids[c]), reverse=True)
    relabel = {cluster: rank for rank, cluster in enumerate(order)}
    return [relabel[label] for label in labels]


def kmeans_segmentation(customers, k=KMEANS_CLUSTERS, now=None):
    """
    Cluster customers on points, purchases, age and inactivity.

    Falls back to rule based segmentation with fewer than ``k`` customers.
    The top cluster is ``vip`` and the bottom one ``churned``; the rest are
    ``at_risk`` after 30 idle days, otherwise ``regular``.
    """
    now = now or timezone.now()
    if len(customers) < k:
        return rule_based_segmentation(customers, now=now)

    features = [
        (
            customer.points_balance,
            customer.total_purchases,
            days_between(now, customer.created_at),
            days_between(now, customer.last_activity_at),
        )
        for customer in customers
    ]
    maxima = [max(max(column), 1) for column in zip(*features)]
    normalized = [[value / top for value, top in zip(row, maxima)] for row in features]

    labels = kmeans(normalized, k)

    segments = []
    for customer, row, cluster in zip(customers, features, labels):
        inactive_days = row[3]
        if cluster == 0:
            segment = 'vip'
        elif cluster == k - 1:
            segment = 'churned'
        elif inactive_days > AT_RISK_DAYS:
            segment = 'at_risk'
        else:
            segment = 'regular'

        score = engagement_score(customer.points_balance, customer.total_purchases, inactive_days)
        segments.append(_segment(customer, segment, score, inactive_days))

    return segments


# =============================================================================
# RFM
# =============================================================================

def recency_score(days):
    if days <= 7:
        return 5
    if days <= 30:
        return 4
    if days <= 60:
        return 3
    if days <= 90:
        return 2
    return 1


def frequency_score(purchases):
    if purchases >= 20:
        return 5
    if purchases >= 10:
        return 4
    if purchases >= 5:
        return 3
    if purchases >= 2:
        return 2
    return 1


def monetary_score(points):
    if points >= 100:
        return 5
    if points >= 50:
        return 4
    if points >= 25:
        return 3
    if points >= 10:
        return 2
    return 1


def rfm_segmentation(customers, now=None):
    """Score recency, frequency and points; 13 of 15 or more is ``vip``."""
    now = now or timezone.now()

    segments = []
    for customer in customers:
        recency = days_between(now, customer.last_activity_at)
        frequency = frequency_score(customer.total_purchases)
        total = recency_score(recency) + frequency + monetary_score(customer.points_balance)

        if total >= 13:
            segment = 'vip'
        elif recency > CHURNED_DAYS:
            segment = 'churned'
        elif recency > AT_RISK_DAYS:
            segment = 'at_risk'
        elif frequency >= 3:
            segment = 'regular'
        else:
            segment = 'new'

        segments.append(_segment(customer, segment, round(total / 15 * 100), recency))

    return segments


# =============================================================================
# Entry points
# =============================================================================

def segment_customers(customers, method='rules', now=None):
    if method == 'rules':
        return rule_based_segmentation(customers, now=now)
    if method == 'kmeans':
        return kmeans_segmentation(customers, now=now)
    if method == 'rfm':
        return rfm_segmentation(customers, now=now)
    raise InvalidMethodError(
        f"Invalid segmentation method: '{method}'. "
        f"Valid options: {', '.join(SEGMENTATION_METHODS)}"
    )


def segment_distribution(segments):
    """Count and share of every segment, including empty ones."""
    total = len(segments)
    counts = dict.fromkeys(SEGMENTS, 0)
    for item in segments:
        counts[item['segment']] += 1

    return [
        {
            'segment': segment,
            'count': count,
            'percentage': round(count / total * 100) if total else 0,
            'description': SEGMENT_DESCRIPTIONS[segment],
        }
        for segment, count in counts.items()
    ]
