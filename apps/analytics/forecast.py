"""
Daily purchase forecasting.

Each method takes a sparse daily series (``[{'date': 'YYYY-MM-DD',
'value': n}, ...]`` sorted by date) and returns::

    {
        'historical': [...],
        'forecast': [...],          # one point per day after the last date
        'confidence': 'high' | 'medium' | 'low',
        'trend': 'up' | 'down' | 'stable',
        'percentageChange': float,  # second half mean vs first half mean
    }
"""

import math
from datetime import date, datetime, time, timedelta
from statistics import fmean, linear_regression

from django.utils import timezone

from apps.loyalty.models import LoyaltyTransaction, Profile, TransactionType
from .analytics import filter_created
from .exceptions import InvalidMethodError

FORECAST_METHODS = ('linear', 'moving', 'exponential')
FORECAST_METRICS = ('purchases', 'revenue')

DEFAULT_WINDOW_DAYS = 30
MOVING_AVERAGE_WINDOW = 7
SMOOTHING_ALPHA = 0.3
TREND_THRESHOLD = 5

ESTIMATED_FORECAST_NOTE = 'Estimated from customer profiles (transaction data unavailable)'


def _empty_result(data):
    return {
        'historical': data,
        'forecast': [],
        'confidence': 'low',
        'trend': 'stable',
        'percentageChange': 0,
    }


def trend_change(values):
    """Percentage change of the second half's mean over the first half's."""
    middle = len(values) // 2
    first, second = values[:middle], values[middle:]
    if not first or not second:
        return 0
    first_avg = fmean(first)
    if first_avg <= 0:
        return 0
    return (fmean(second) - first_avg) / first_avg * 100


def trend_direction(change):
    if change > TREND_THRESHOLD:
        return 'up'
    if change < -TREND_THRESHOLD:
        return 'down'
    return 'stable'


def _future_points(data, predict, periods):
    last_day = date.fromisoformat(data[-1]['date'])
    return [
        {
            'date': (last_day + timedelta(days=step)).isoformat(),
            'value': max(0, round(predict(step))),
        }
        for step in range(1, periods + 1)
    ]


def _result(data, forecast, confidence):
    change = trend_change([point['value'] for point in data])
    return {
        'historical': data,
        'forecast': forecast,
        'confidence': confidence,
        'trend': trend_direction(change),
        'percentageChange': round(change, 1),
    }


def r_squared(xs, ys, slope, intercept):
    mean_y = fmean(ys)
    total = sum((y - mean_y) ** 2 for y in ys)
    if total == 0:
        return 0
    residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
    return 1 - residual / total


def linear_regression_forecast(data, periods=7):
    """Least squares line through the series; confidence from R²."""
    if len(data) < 2:
        return _empty_result(data)

    xs = list(range(len(data)))
    ys = [point['value'] for point in data]
    slope, intercept = linear_regression(xs, ys)
    last = xs[-1]

    forecast = _future_points(data, lambda step: slope * (last + step) + intercept, periods)

    fit = r_squared(xs, ys, slope, intercept)
    if fit > 0.7 and len(data) >= 7:
        confidence = 'high'
    elif fit > 0.4 and len(data) >= 4:
        confidence = 'medium'
    else:
        confidence = 'low'

    return _result(data, forecast, confidence)


def moving_average_forecast(data, periods=7, window=MOVING_AVERAGE_WINDOW):
    """Flat line at the mean of the last ``window`` points."""
    if len(data) < window:
        return _empty_result(data)

    average = fmean(point['value'] for point in data[-window:])
    forecast = _future_points(data, lambda step: average, periods)
    return _result(data, forecast, 'medium' if len(data) >= 14 else 'low')


def exponential_smoothing_forecast(data, periods=7, alpha=SMOOTHING_ALPHA):
    """Flat line at the exponentially smoothed last value."""
    if len(data) < 2:
        return _empty_result(data)

    smoothed = data[0]['value']
    for point in data[1:]:
        smoothed = alpha * point['value'] + (1 - alpha) * smoothed

    forecast = _future_points(data, lambda step: smoothed, periods)
    return _result(data, forecast, 'medium' if len(data) >= 7 else 'low')


def forecast_series(data, method='linear', periods=7):
    if method == 'linear':
        return linear_regression_forecast(data, periods)
    if method == 'moving':
        return moving_average_forecast(data, periods)
    if method == 'exponential':
        return exponential_smoothing_forecast(data, periods)
    raise InvalidMethodError(
        f"Invalid forecast method: '{method}'. Valid options: {', '.join(FORECAST_METHODS)}"
    )


# =============================================================================
# Series construction
# =============================================================================

def forecast_window(start_date=None, end_date=None):
    """Requested days, defaulting to the 30 days before ``end_date``."""
    end_date = end_date or timezone.localdate()
    start_date = start_date or end_date - timedelta(days=DEFAULT_WINDOW_DAYS)
    return start_date, end_date


def daily_purchases(start_date, end_date):
    """Purchase counts for each day that had any."""
    queryset = filter_created(
        LoyaltyTransaction.objects.filter(type=TransactionType.PURCHASE), start_date, end_date
    )
    counts = {}
    for created_at in queryset.values_list('created_at', flat=True):
        key = timezone.localtime(created_at).date().isoformat()
        counts[key] = counts.get(key, 0) + 1
    return [{'date': key, 'value': counts[key]} for key in sorted(counts)]


def estimated_daily_purchases(start_date, end_date):
    """
    Daily purchases estimated from profiles with points.

    Each card's points are spread evenly over the days between its creation
    and its last update, counting only days inside the window.
    """
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(start_date, time.min), tz)
    days = (end_date - start_date).days + 1

    totals = {}
    for profile in Profile.objects.filter(points_balance__gt=0):
        created, updated = profile.created_at, profile.updated_at or profile.created_at
        active_days = max(1, math.ceil((updated - created) / timedelta(days=1)))
        per_day = profile.points_balance / active_days

        for offset in range(days):
            moment = start + timedelta(days=offset)
            if created <= moment <= updated:
                key = (start_date + timedelta(days=offset)).isoformat()
                totals[key] = totals.get(key, 0) + per_day

    series = [{'date': key, 'value': round(totals[key])} for key in sorted(totals)]
    return [point for point in series if point['value'] > 0]


def purchase_forecast(start_date=None, end_date=None, method='linear', periods=7, metric='purchases'):
    """
    Forecast daily purchases for the ``periods`` days after the window.

    ``revenue`` has no amounts in the ledger and uses purchase counts.
    Without ledger data the series is estimated from profiles and the
    result carries a ``note``.
    """
    if method not in FORECAST_METHODS:
        raise InvalidMethodError(
            f"Invalid forecast method: '{method}'. Valid options: {', '.join(FORECAST_METHODS)}"
        )

    start_date, end_date = forecast_window(start_date, end_date)

    historical = daily_purchases(start_date, end_date)
    note = None
    if not historical:
        historical = estimated_daily_purchases(start_date, end_date)
        if not historical:
            return {**_empty_result([]), 'method': method, 'metric': metric}
        note = ESTIMATED_FORECAST_NOTE

    result = forecast_series(historical, method, periods)
    result.update({'method': method, 'metric': metric})
    if note:
        result['note'] = note
    return result
