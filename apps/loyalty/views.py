from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from apps.employees.permissions import IsActiveEmployee, IsAdminEmployee, get_request_employee
from .models import Profile
from .serializers import (
    ProfileSerializer,
    LoyaltyTransactionSerializer,
    PurchaseInputSerializer,
    RedeemInputSerializer,
    ScanQuerySerializer,
    CustomerCreateSerializer,
    CustomerListQuerySerializer,
    CustomerIdSerializer,
    TransactionFilterSerializer,
)
from .services import (
    record_purchase,
    build_purchase_message,
    redeem_reward,
    scan_customer,
    card_status,
    list_customers,
    create_customer,
    delete_customer,
    dashboard_stats,
    list_transactions,
    CustomerNotFoundError,
    CustomerAlreadyExistsError,
    RewardNotAvailableError,
    RewardAlreadyRedeemedError,
)
from .rewards import POINTS_PER_PURCHASE, normalize_redeemed


# Response serializers for API documentation
class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class PurchaseResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    customer = serializers.DictField()
    pointsEarned = serializers.IntegerField()
    rewardEarned = serializers.BooleanField()
    rewardType = serializers.CharField(allow_null=True)
    earnedMeal = serializers.BooleanField()
    earnedCoffee = serializers.BooleanField()
    message = serializers.CharField()


# =============================================================================
# Counter operations (employees)
# =============================================================================

@extend_schema(
    request=PurchaseInputSerializer,
    responses={
        200: PurchaseResponseSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Record one purchase for a scanned customer and report any reward earned.",
    tags=['loyalty'],
)
@api_view(['POST'])
@permission_classes([IsActiveEmployee])
def record_purchase_view(request):
    serializer = PurchaseInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        profile, rewards = record_purchase(
            customer_id=serializer.validated_data['customer_id'],
            employee=get_request_employee(request),
        )
    except CustomerNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'success': True,
        'customer': {
            'id': str(profile.id),
            'name': profile.get_display_name(),
            'total_purchases': profile.total_purchases,
            'points_balance': profile.points_balance,
        },
        'pointsEarned': POINTS_PER_PURCHASE,
        'rewardEarned': rewards['reward_earned'],
        'rewardType': rewards['reward_type'],
        'earnedMeal': rewards['earned_meal'],
        'earnedCoffee': rewards['earned_coffee'],
        'message': build_purchase_message(profile, rewards),
    })


@extend_schema(
    request=RedeemInputSerializer,
    responses={
        200: ProfileSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Mark a coffee or meal threshold as redeemed. Points are kept.",
    tags=['loyalty'],
)
@api_view(['POST'])
@permission_classes([IsActiveEmployee])
def redeem_reward_view(request):
    serializer = RedeemInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        profile = redeem_reward(
            customer_id=data['customerId'],
            reward_type=data['type'],
            threshold=data['points'],
            employee=get_request_employee(request),
        )
    except CustomerNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except (RewardNotAvailableError, RewardAlreadyRedeemedError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'message': f"Reward redeemed successfully! {data['type']} at {data['points']} points",
        'customer': {
            'id': str(profile.id),
            'name': profile.get_display_name(),
            'points': profile.points_balance,
            'redeemedRewards': normalize_redeemed(profile.redeemed_rewards),
        },
    })


@extend_schema(
    parameters=[OpenApiParameter('userId', str, required=True)],
    responses={
        200: serializers.DictField(),
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Look up a scanned loyalty card: balance, stamps and available rewards.",
    tags=['loyalty'],
)
@api_view(['GET'])
@permission_classes([IsActiveEmployee])
def scan_customer_view(request):
    serializer = ScanQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    try:
        customer = scan_customer(customer_id=serializer.validated_data['userId'])
    except CustomerNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response({'success': True, 'customer': customer})


# =============================================================================
# Customer self-service
# =============================================================================

@extend_schema(
    responses={200: ProfileSerializer, 404: ErrorResponseSerializer},
    description="The signed-in customer's loyalty card and reward status.",
    tags=['loyalty'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_card(request):
    try:
        profile = request.user.profile
    except Profile.DoesNotExist:
        return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'success': True,
        'profile': ProfileSerializer(profile).data,
        **card_status(profile),
    })


# =============================================================================
# Admin dashboard
# =============================================================================

@extend_schema(
    methods=['GET'],
    parameters=[OpenApiParameter('search', str)],
    responses={200: ProfileSerializer(many=True)},
    description="Up to 100 customers, most recently active first.",
    tags=['loyalty-admin'],
)
@extend_schema(
    methods=['POST'],
    request=CustomerCreateSerializer,
    responses={201: ProfileSerializer, 400: ErrorResponseSerializer},
    description="Enrol a customer from the dashboard.",
    tags=['loyalty-admin'],
)
@extend_schema(
    methods=['DELETE'],
    parameters=[OpenApiParameter('id', str, required=True)],
    responses={200: None, 404: ErrorResponseSerializer},
    description="Delete a customer and its login account.",
    tags=['loyalty-admin'],
)
@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAdminEmployee])
def customers(request):
    if request.method == 'GET':
        query = CustomerListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        profiles = list_customers(search=query.validated_data.get('search'))
        return Response({
            'success': True,
            'customers': ProfileSerializer(profiles, many=True).data,
        })

    if request.method == 'POST':
        serializer = CustomerCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            profile = create_customer(
                full_name=data['fullName'],
                email=data.get('email'),
                phone=data.get('phone'),
                birthday=data.get('birthday'),
            )
        except CustomerAlreadyExistsError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'success': True,
            'message': 'Customer created successfully',
            'customer': ProfileSerializer(profile).data,
        }, status=status.HTTP_201_CREATED)

    serializer = CustomerIdSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    try:
        delete_customer(customer_id=serializer.validated_data['id'])
    except CustomerNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response({'success': True})


@extend_schema(
    responses={200: serializers.DictField()},
    description="Headline numbers for the admin dashboard.",
    tags=['loyalty-admin'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def stats(request):
    return Response({'success': True, 'stats': dashboard_stats()})


@extend_schema(
    parameters=[TransactionFilterSerializer],
    responses={200: LoyaltyTransactionSerializer(many=True)},
    description="Ledger of purchases and redemptions, newest first.",
    tags=['loyalty-admin'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def transactions(request):
    serializer = TransactionFilterSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    params = serializer.validated_data

    queryset = list_transactions(
        type=params.get('type'),
        start_date=params.get('startDate'),
        end_date=params.get('endDate'),
        customer_id=params.get('customerId'),
        employee_id=params.get('employeeId'),
    )

    return Response({
        'success': True,
        'transactions': LoyaltyTransactionSerializer(queryset, many=True).data,
        'total': queryset.count(),
    })
