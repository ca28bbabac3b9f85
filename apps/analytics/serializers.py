"""
Serializers for analytics app.

This module contains:
1. Input serializers - Query parameter validation
2. Response serializers - API documentation

Input Serializers:
    DateRangeQuerySerializer - startDate / endDate
    GroupedRangeQuerySerializer - date range plus groupBy
    EmployeePerformanceQuerySerializer - date range plus employeeId
    SegmentsQuerySerializer - segmentation method
    ChurnRiskQuerySerializer - churn method and limit
    LifetimeValueQuerySerializer - limit and averagePurchaseValue
    NextPurchaseQuerySerializer - limit and daysAhead
    ForecastQuerySerializer - date range, method, periods and metric

Response Serializers:
    TransactionsResponseSerializer, CustomerGrowthResponseSerializer,
    RedemptionsResponseSerializer, EmployeePerformanceResponseSerializer,
    GiftCardTransactionsResponseSerializer, SegmentsResponseSerializer,
    ChurnRiskResponseSerializer, LifetimeValueResponseSerializer,
    NextPurchaseResponseSerializer, ForecastResponseSerializer
"""

from rest_framework import serializers

from .analytics import GROUPINGS
from .forecast import FORECAST_METHODS, FORECAST_METRICS
from .segmentation import SEGMENTATION_METHODS, SEGMENTS

DEFAULT_LIMIT = 50
MAX_LIMIT = 1000


def clamp_limit(value):
    return max(1, min(MAX_LIMIT, value))


# =============================================================================
# Input Serializers (Query Parameter Validation)
# =============================================================================

class DateRangeQuerySerializer(serializers.Serializer):
    """
    Validate an inclusive date range.

    Query Parameters:
        startDate (date): First day (YYYY-MM-DD)
        endDate (date): Last day (YYYY-MM-DD)
    """

    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError({
                'startDate': 'Start date must be before end date'
            })
        return attrs


class GroupedRangeQuerySerializer(DateRangeQuerySerializer):
    """Date range plus the period grouping for series."""

    groupBy = serializers.ChoiceField(
        choices=GROUPINGS,
        default='day',
        help_text="Period grouping: 'day', 'week' or 'month'"
    )


class EmployeePerformanceQuerySerializer(DateRangeQuerySerializer):
    employeeId = serializers.UUIDField(required=False)


class SegmentsQuerySerializer(serializers.Serializer):
    method = serializers.ChoiceField(
        choices=SEGMENTATION_METHODS,
        default='rules',
        help_text="Segmentation method: 'rules', 'kmeans' or 'rfm'"
    )


class LimitQuerySerializer(serializers.Serializer):
    """
    Result limit shared by the prediction endpoints.

    Out of range values are clamped to 1-1000 rather than rejected.
    """

    limit = serializers.IntegerField(required=False, default=DEFAULT_LIMIT)

    def validate_limit(self, value):
        return clamp_limit(value)


class ChurnRiskQuerySerializer(LimitQuerySerializer):
    method = serializers.ChoiceField(choices=('rules',), default='rules')


class LifetimeValueQuerySerializer(LimitQuerySerializer):
    averagePurchaseValue = serializers.FloatField(
        required=False,
        default=1.0,
        help_text='Currency value of one purchase or point (minimum 0.01)'
    )

    def validate_averagePurchaseValue(self, value):
        return max(0.01, value)


class NextPurchaseQuerySerializer(LimitQuerySerializer):
    daysAhead = serializers.IntegerField(
        required=False,
        default=14,
        min_value=0,
        max_value=365,
        help_text='Only include customers expected within this many days'
    )


class ForecastQuerySerializer(DateRangeQuerySerializer):
    """
    Validate forecast parameters.

    ``periods`` is clamped to 1-365 days.
    """

    method = serializers.ChoiceField(choices=FORECAST_METHODS, default='linear')
    periods = serializers.IntegerField(required=False, default=7)
    metric = serializers.ChoiceField(choices=FORECAST_METRICS, default='purchases')

    def validate_periods(self, value):
        return max(1, min(365, value))


# =============================================================================
# Response Serializers (API Documentation)
# =============================================================================

class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()


class PeriodCountsSerializer(serializers.Serializer):
    date = serializers.CharField(help_text='YYYY-MM-DD, YYYY-Www or YYYY-MM')
    purchases = serializers.IntegerField()
    redemptions = serializers.IntegerField()
    total = serializers.IntegerField()


class TransactionsResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    data = PeriodCountsSerializer(many=True)
    grouped = serializers.DictField()
    note = serializers.CharField(required=False)


class GrowthPointSerializer(serializers.Serializer):
    date = serializers.CharField()
    newCustomers = serializers.IntegerField()
    totalCustomers = serializers.IntegerField()


class CustomerGrowthResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    data = GrowthPointSerializer(many=True)
    total = serializers.IntegerField()


class ThresholdBreakdownSerializer(serializers.Serializer):
    threshold = serializers.IntegerField()
    coffee = serializers.IntegerField()
    meal = serializers.IntegerField()


class RedemptionsResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    coffee = serializers.IntegerField()
    meal = serializers.IntegerField()
    total = serializers.IntegerField()
    breakdown = ThresholdBreakdownSerializer(many=True)


class EmployeeStatsSerializer(serializers.Serializer):
    employee_id = serializers.UUIDField()
    employee_name = serializers.CharField()
    purchases = serializers.IntegerField()
    redemptions = serializers.IntegerField()
    total = serializers.IntegerField()


class EmployeePerformanceResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    employees = EmployeeStatsSerializer(many=True)
    total = serializers.IntegerField()


class GiftCardPeriodSerializer(serializers.Serializer):
    date = serializers.CharField()
    transactions = serializers.IntegerField()
    totalAmount = serializers.FloatField()
    averageAmount = serializers.FloatField()


class GiftCardTransactionsResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    data = GiftCardPeriodSerializer(many=True)
    grouped = serializers.DictField()


class CustomerSummarySerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    customer_name = serializers.CharField()
    points_balance = serializers.IntegerField()
    total_purchases = serializers.IntegerField()


class CustomerSegmentSerializer(CustomerSummarySerializer):
    segment = serializers.ChoiceField(choices=SEGMENTS)
    engagement_score = serializers.IntegerField()
    last_activity_days = serializers.IntegerField()


class SegmentShareSerializer(serializers.Serializer):
    segment = serializers.ChoiceField(choices=SEGMENTS)
    count = serializers.IntegerField()
    percentage = serializers.IntegerField()
    description = serializers.CharField()


class SegmentsResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    segments = CustomerSegmentSerializer(many=True)
    distribution = SegmentShareSerializer(many=True)
    method = serializers.CharField()


class ChurnRiskSerializer(CustomerSummarySerializer):
    risk_score = serializers.IntegerField()
    probability = serializers.FloatField()
    days_inactive = serializers.IntegerField()
    reason = serializers.CharField()


class ChurnRiskResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    atRisk = ChurnRiskSerializer(many=True)
    method = serializers.CharField()
    total = serializers.IntegerField()


class LifetimeValueSerializer(CustomerSummarySerializer):
    clv = serializers.FloatField()
    predicted_purchases = serializers.FloatField()
    predicted_value = serializers.FloatField()


class LifetimeValueResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    clvs = LifetimeValueSerializer(many=True)
    total = serializers.IntegerField()
    averagePurchaseValue = serializers.FloatField()


class NextPurchaseSerializer(CustomerSummarySerializer):
    predicted_date = serializers.DateField()
    confidence = serializers.ChoiceField(choices=('high', 'medium', 'low'))
    days_until = serializers.IntegerField()


class NextPurchaseResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    predictions = NextPurchaseSerializer(many=True)
    total = serializers.IntegerField()


class ForecastPointSerializer(serializers.Serializer):
    date = serializers.DateField()
    value = serializers.IntegerField()


class ForecastResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    historical = ForecastPointSerializer(many=True)
    forecast = ForecastPointSerializer(many=True)
    confidence = serializers.ChoiceField(choices=('high', 'medium', 'low'))
    trend = serializers.ChoiceField(choices=('up', 'down', 'stable'))
    percentageChange = serializers.FloatField()
    method = serializers.CharField()
    metric = serializers.CharField()
    note = serializers.CharField(required=False)
