import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes
from apps.employees.permissions import IsAdminEmployee
from .analytics import AnalyticsQueries, load_customers, load_transactions
from .exceptions import AnalyticsServiceError
from .forecast import purchase_forecast
from .prediction import (
    CHURN_REPORT_MIN_SCORE,
    churn_risk as score_churn_risk,
    customer_lifetime_value as score_lifetime_value,
    predict_next_purchase,
)
from .segmentation import segment_customers, segment_distribution
from .serializers import (
    # Input serializers
    GroupedRangeQuerySerializer,
    DateRangeQuerySerializer,
    EmployeePerformanceQuerySerializer,
    SegmentsQuerySerializer,
    ChurnRiskQuerySerializer,
    LifetimeValueQuerySerializer,
    NextPurchaseQuerySerializer,
    ForecastQuerySerializer,
    # Response serializers
    TransactionsResponseSerializer,
    CustomerGrowthResponseSerializer,
    RedemptionsResponseSerializer,
    EmployeePerformanceResponseSerializer,
    GiftCardTransactionsResponseSerializer,
    SegmentsResponseSerializer,
    ChurnRiskResponseSerializer,
    LifetimeValueResponseSerializer,
    NextPurchaseResponseSerializer,
    ForecastResponseSerializer,
    ErrorSerializer,
)

logger = logging.getLogger(__name__)

DATE_RANGE_PARAMETERS = [
    OpenApiParameter('startDate', OpenApiTypes.DATE, description='First day (YYYY-MM-DD)'),
    OpenApiParameter('endDate', OpenApiTypes.DATE, description='Last day, inclusive (YYYY-MM-DD)'),
]

GROUP_BY_PARAMETER = OpenApiParameter(
    'groupBy', OpenApiTypes.STR, description="Period grouping: 'day', 'week', 'month'", default='day'
)

LIMIT_PARAMETER = OpenApiParameter(
    'limit', OpenApiTypes.INT, description='Maximum results (1-1000)', default=50
)


def _validated(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _error(exc):
    return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _with_customer(rows, customers):
    """Attach name and card totals to per-customer results."""
    by_id = {customer.id: customer for customer in customers}
    enriched = []
    for row in rows:
        customer = by_id.get(row['customer_id'])
        enriched.append({
            **row,
            'customer_name': customer.customer_name if customer else 'Unknown',
            'points_balance': customer.points_balance if customer else 0,
            'total_purchases': customer.total_purchases if customer else 0,
        })
    return enriched


# =============================================================================
# Activity reports
# =============================================================================

@extend_schema(
    parameters=[*DATE_RANGE_PARAMETERS, GROUP_BY_PARAMETER],
    responses={200: TransactionsResponseSerializer, 400: ErrorSerializer},
    description='Purchases and redemptions per period. Estimated from profiles when the ledger is empty.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def transactions(request):
    params = _validated(GroupedRangeQuerySerializer, request)

    try:
        data = AnalyticsQueries.transactions(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            group_by=params['groupBy'],
        )
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({'success': True, **data})


@extend_schema(
    parameters=[*DATE_RANGE_PARAMETERS, GROUP_BY_PARAMETER],
    responses={200: CustomerGrowthResponseSerializer, 400: ErrorSerializer},
    description='New customers per period with a running total.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def customer_growth(request):
    params = _validated(GroupedRangeQuerySerializer, request)

    try:
        data = AnalyticsQueries.customer_growth(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            group_by=params['groupBy'],
        )
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({'success': True, **data})


@extend_schema(
    parameters=DATE_RANGE_PARAMETERS,
    responses={200: RedemptionsResponseSerializer, 400: ErrorSerializer},
    description='Coffee and meal redemptions with a per-threshold breakdown.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def redemptions(request):
    params = _validated(DateRangeQuerySerializer, request)

    try:
        data = AnalyticsQueries.redemptions(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
        )
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({'success': True, **data})


@extend_schema(
    parameters=[
        *DATE_RANGE_PARAMETERS,
        OpenApiParameter('employeeId', OpenApiTypes.UUID, description='Limit to one employee'),
    ],
    responses={200: EmployeePerformanceResponseSerializer, 400: ErrorSerializer},
    description='Purchases and redemptions recorded per employee, busiest first.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def employee_performance(request):
    params = _validated(EmployeePerformanceQuerySerializer, request)

    try:
        data = AnalyticsQueries.employee_performance(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            employee_id=params.get('employeeId'),
        )
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({'success': True, **data})


@extend_schema(
    parameters=[*DATE_RANGE_PARAMETERS, GROUP_BY_PARAMETER],
    responses={200: GiftCardTransactionsResponseSerializer, 400: ErrorSerializer},
    description='Gift card transaction count and volume per period.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def gift_card_transactions(request):
    params = _validated(GroupedRangeQuerySerializer, request)

    try:
        data = AnalyticsQueries.gift_card_transactions(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            group_by=params['groupBy'],
        )
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({'success': True, **data})


# =============================================================================
# Customer insights
# =============================================================================

@extend_schema(
    parameters=[
        OpenApiParameter(
            'method', OpenApiTypes.STR,
            description="Segmentation method: 'rules', 'kmeans', 'rfm'", default='rules',
        ),
    ],
    responses={200: SegmentsResponseSerializer, 400: ErrorSerializer},
    description='Segment every customer and summarize the distribution.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def customer_segments(request):
    params = _validated(SegmentsQuerySerializer, request)
    method = params['method']

    customers = load_customers()
    try:
        segments = segment_customers(customers, method=method)
    except AnalyticsServiceError as e:
        return _error(e)

    return Response({
        'success': True,
        'segments': _with_customer(segments, customers),
        'distribution': segment_distribution(segments) if segments else [],
        'method': method,
    })


@extend_schema(
    parameters=[
        LIMIT_PARAMETER,
        OpenApiParameter('method', OpenApiTypes.STR, description="Scoring method: 'rules'", default='rules'),
    ],
    responses={200: ChurnRiskResponseSerializer},
    description='Customers with a churn risk score of 30 or more, riskiest first.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def churn_risk(request):
    params = _validated(ChurnRiskQuerySerializer, request)

    customers = load_customers()
    risks = score_churn_risk(customers, load_transactions())
    at_risk = [risk for risk in risks if risk['risk_score'] >= CHURN_REPORT_MIN_SCORE]

    return Response({
        'success': True,
        'atRisk': _with_customer(at_risk[:params['limit']], customers),
        'method': params['method'],
        'total': len(risks),
    })


@extend_schema(
    parameters=[
        LIMIT_PARAMETER,
        OpenApiParameter(
            'averagePurchaseValue', OpenApiTypes.FLOAT,
            description='Value of one purchase or point', default=1,
        ),
    ],
    responses={200: LifetimeValueResponseSerializer},
    description='Customer lifetime value: current points plus a year of projected purchases.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def customer_lifetime_value(request):
    params = _validated(LifetimeValueQuerySerializer, request)
    value = params['averagePurchaseValue']

    customers = load_customers()
    values = score_lifetime_value(customers, load_transactions(), average_purchase_value=value)

    return Response({
        'success': True,
        'clvs': _with_customer(values[:params['limit']], customers),
        'total': len(values),
        'averagePurchaseValue': value,
    })


@extend_schema(
    parameters=[
        LIMIT_PARAMETER,
        OpenApiParameter('daysAhead', OpenApiTypes.INT, description='Prediction horizon in days', default=14),
    ],
    responses={200: NextPurchaseResponseSerializer},
    description='Customers expected to return within the horizon, soonest first.',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def next_purchase(request):
    params = _validated(NextPurchaseQuerySerializer, request)

    customers = load_customers()
    predictions = predict_next_purchase(customers, load_transactions())
    upcoming = sorted(
        (p for p in predictions if 0 <= p['days_until'] <= params['daysAhead']),
        key=lambda p: p['days_until'],
    )

    return Response({
        'success': True,
        'predictions': _with_customer(upcoming[:params['limit']], customers),
        'total': len(predictions),
    })


@extend_schema(
    parameters=[
        *DATE_RANGE_PARAMETERS,
        OpenApiParameter(
            'method', OpenApiTypes.STR,
            description="Forecast method: 'linear', 'moving', 'exponential'", default='linear',
        ),
        OpenApiParameter('periods', OpenApiTypes.INT, description='Days to forecast (1-365)', default=7),
        OpenApiParameter('metric', OpenApiTypes.STR, description="'purchases' or 'revenue'", default='purchases'),
    ],
    responses={200: ForecastResponseSerializer, 400: ErrorSerializer},
    description='Forecast daily purchases from the last 30 days (or the given window).',
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def forecast(request):
    params = _validated(ForecastQuerySerializer, request)

    try:
        data = purchase_forecast(
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            method=params['method'],
            periods=params['periods'],
            metric=params['metric'],
        )
    except AnalyticsServiceError as e:
        return _error(e)

    logger.debug("Forecast %s over %d points", params['method'], len(data['historical']))
    return Response({'success': True, **data})
