import logging

from django.http import HttpResponse
from django.views.decorators.cache import never_cache
from rest_framework import viewsets, status, serializers as drf_serializers
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes
from apps.employees.permissions import IsActiveEmployee, IsAdminEmployee, get_request_employee
from .exceptions import InsufficientBalanceError, QRGenerationError
from .serializers import (
    GiftCardSerializer,
    GiftCardDetailSerializer,
    GiftCardPublicSerializer,
    GiftCardCreateSerializer,
    GiftCardUpdateSerializer,
    GiftCardFilterSerializer,
    GiftCardScanQuerySerializer,
    GiftCardChargeSerializer,
)
from .services import GiftCardService, GiftCardQRGenerator, build_share_link

logger = logging.getLogger(__name__)


# Response serializers for API documentation
class ErrorResponseSerializer(drf_serializers.Serializer):
    error = drf_serializers.CharField()


class InsufficientBalanceResponseSerializer(drf_serializers.Serializer):
    error = drf_serializers.CharField()
    currentBalance = drf_serializers.FloatField()
    requiredAmount = drf_serializers.FloatField()
    shortfall = drf_serializers.FloatField()


class GiftCardStatsResponseSerializer(drf_serializers.Serializer):
    totalGiftCards = drf_serializers.IntegerField()
    totalBalanceIssued = drf_serializers.FloatField()
    totalBalanceRemaining = drf_serializers.FloatField()
    totalBalanceUsed = drf_serializers.FloatField()
    activeGiftCards = drf_serializers.IntegerField()
    claimedGiftCards = drf_serializers.IntegerField()
    averageGiftCardValue = drf_serializers.FloatField()
    topGiftCards = drf_serializers.ListField(child=drf_serializers.DictField())


def _card_summary(gift_card):
    return {
        'id': str(gift_card.id),
        'serialNumber': str(gift_card.serial_number),
        'recipientName': gift_card.recipient_name,
        'balance': float(gift_card.balance_mxn),
        'initialBalance': float(gift_card.initial_balance_mxn),
    }


class GiftCardViewSet(viewsets.GenericViewSet):
    """
    Gift card management for the employee dashboard.

    list: Cards filtered by status and search, newest first
    create: Issue a new card
    retrieve: Card with its transactions
    partial_update: Activate or deactivate a card
    qr: PNG QR code of the shareable link
    stats: Balance totals (admin only)
    """

    permission_classes = [IsActiveEmployee]
    serializer_class = GiftCardSerializer
    pagination_class = None
    lookup_value_regex = '[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'

    def get_permissions(self):
        """Stats are restricted to admins."""
        if self.action == 'stats':
            return [IsAdminEmployee()]
        return super().get_permissions()

    @extend_schema(
        parameters=[GiftCardFilterSerializer],
        responses={200: GiftCardSerializer(many=True)},
        tags=['gift-cards'],
    )
    def list(self, request):
        filter_serializer = GiftCardFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        gift_cards = GiftCardService.list(
            status=params['status'],
            search=params.get('search') or None,
        )
        return Response({
            'success': True,
            'giftCards': GiftCardSerializer(gift_cards, many=True).data,
        })

    @extend_schema(
        request=GiftCardCreateSerializer,
        responses={201: GiftCardSerializer, 400: ErrorResponseSerializer},
        tags=['gift-cards'],
    )
    def create(self, request):
        serializer = GiftCardCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        gift_card = GiftCardService.issue(
            recipient_name=serializer.validated_data['recipientName'],
            initial_balance=serializer.validated_data['initialBalanceMxn'],
            created_by=get_request_employee(request),
        )

        return Response({
            'success': True,
            'giftCard': GiftCardSerializer(gift_card).data,
            'shareableLink': build_share_link(gift_card.share_token),
        }, status=status.HTTP_201_CREATED)

    @extend_schema(
        responses={200: GiftCardDetailSerializer, 404: ErrorResponseSerializer},
        tags=['gift-cards'],
    )
    def retrieve(self, request, pk=None):
        gift_card = GiftCardService.get(pk)
        return Response({
            'success': True,
            'giftCard': GiftCardDetailSerializer(gift_card).data,
        })

    @extend_schema(
        request=GiftCardUpdateSerializer,
        responses={200: GiftCardSerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
        tags=['gift-cards'],
    )
    def partial_update(self, request, pk=None):
        serializer = GiftCardUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        gift_card = GiftCardService.update(
            pk,
            is_active=serializer.validated_data.get('is_active'),
        )
        return Response({
            'success': True,
            'giftCard': GiftCardSerializer(gift_card).data,
        })

    @extend_schema(
        responses={(200, 'image/png'): OpenApiTypes.BINARY, 404: ErrorResponseSerializer},
        tags=['gift-cards'],
    )
    @action(detail=True, methods=['get'])
    def qr(self, request, pk=None):
        """
        QR code for the card's shareable link.

        GET /api/admin/gift-cards/{id}/qr/
        """
        gift_card = GiftCardService.get(pk)
        try:
            png = GiftCardQRGenerator.generate_for_gift_card(gift_card)
        except QRGenerationError as e:
            logger.exception("QR generation failed for gift card %s", gift_card.id)
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return HttpResponse(png, content_type='image/png')

    @extend_schema(
        responses={200: GiftCardStatsResponseSerializer},
        tags=['gift-cards'],
    )
    @action(detail=False, methods=['get'])
    def stats(self, request):
        """
        GET /api/admin/gift-cards/stats/
        """
        return Response({'success': True, 'stats': GiftCardService.get_statistics()})


@never_cache
@extend_schema(
    responses={200: GiftCardPublicSerializer, 404: ErrorResponseSerializer},
    description="Public view of a shared gift card.",
    tags=['gift-cards'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def shared_gift_card(request, share_token):
    gift_card = GiftCardService.get_by_share_token(share_token)
    return Response({
        'success': True,
        'giftCard': GiftCardPublicSerializer(gift_card).data,
    })


@never_cache
@extend_schema(
    parameters=[OpenApiParameter('serialNumber', str, required=True)],
    responses={
        200: GiftCardSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Look up a gift card from its scanned QR code.",
    tags=['gift-cards'],
)
@api_view(['GET'])
@permission_classes([IsActiveEmployee])
def scan_gift_card(request):
    serializer = GiftCardScanQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    gift_card = GiftCardService.scan(serializer.validated_data['serialNumber'])
    return Response({
        'success': True,
        'giftCard': {
            **_card_summary(gift_card),
            'isActive': gift_card.is_active,
            'claimedAt': gift_card.claimed_at,
        },
    })


@never_cache
@extend_schema(
    request=GiftCardChargeSerializer,
    responses={
        200: drf_serializers.DictField(),
        400: InsufficientBalanceResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Pay for a sale with a gift card balance.",
    tags=['gift-cards'],
)
@api_view(['POST'])
@permission_classes([IsActiveEmployee])
def charge_gift_card(request):
    serializer = GiftCardChargeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        gift_card, balance_before = GiftCardService.charge(
            **serializer.validated_data,
            employee=get_request_employee(request),
        )
    except InsufficientBalanceError as e:
        return Response({
            'error': str(e),
            'currentBalance': float(e.current_balance),
            'requiredAmount': float(e.required_amount),
            'shortfall': float(e.shortfall),
        }, status=status.HTTP_400_BAD_REQUEST)

    amount = balance_before - gift_card.balance_mxn
    return Response({
        'success': True,
        'giftCard': _card_summary(gift_card),
        'transaction': {
            'amount': float(amount),
            'balanceBefore': float(balance_before),
            'balanceAfter': float(gift_card.balance_mxn),
        },
        'message': f"Purchase successful. Remaining balance: {gift_card.balance_mxn:.2f} MXN",
    })
