import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Callable

from django.http import HttpResponse
from django.utils.http import http_date, parse_http_date_safe
from django.views.decorators.cache import never_cache
from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes
from apps.giftcards.models import GiftCard
from apps.loyalty.models import Profile
from .services import (
    PKPASS_CONTENT_TYPE,
    generate_loyalty_pkpass,
    generate_gift_card_pkpass,
    register_device,
    unregister_device,
    serials_for_device,
    is_authorized,
    is_google_wallet_configured,
    create_or_update_pass,
    PassCertificatesNotConfiguredError,
    PassSigningError,
    GoogleWalletNotConfiguredError,
    GoogleWalletAPIError,
)
from .services.images import render_loyalty_background

logger = logging.getLogger(__name__)


# Response serializers for API documentation
class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class SerialNumbersResponseSerializer(serializers.Serializer):
    serialNumbers = serializers.ListField(child=serializers.CharField())
    lastUpdated = serializers.CharField()


class GoogleWalletResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    saveUrl = serializers.URLField()
    objectId = serializers.CharField()


class PushTokenSerializer(serializers.Serializer):
    pushToken = serializers.CharField(required=False, allow_blank=True, default='')


class DeviceLogSerializer(serializers.Serializer):
    logs = serializers.ListField(child=serializers.CharField(), required=False, default=list)


def _parse_uuid(value):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _pkpass_response(content, filename, last_modified=None):
    response = HttpResponse(content, content_type=PKPASS_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    if last_modified is not None:
        response['Last-Modified'] = http_date(last_modified.timestamp())
    return response


def _plain(message, status_code):
    return HttpResponse(message, status=status_code, content_type='text/plain')


# =============================================================================
# PassKit web service
# =============================================================================

@dataclass(frozen=True)
class PassKind:
    """One pass product served by the PassKit web service."""

    label: str
    lookup: Callable
    updated_since: Callable
    generate: Callable


def _find_profile(serial_number):
    pk = _parse_uuid(serial_number)
    return Profile.objects.filter(id=pk).first() if pk else None


def _find_gift_card(serial_number):
    pk = _parse_uuid(serial_number)
    return GiftCard.objects.filter(serial_number=pk).first() if pk else None


def _profiles_since(serials, since):
    queryset = Profile.objects.filter(id__in=serials)
    if since is not None:
        queryset = queryset.filter(updated_at__gt=since)
    return [(str(p.id), p.updated_at) for p in queryset]


def _gift_cards_since(serials, since):
    queryset = GiftCard.objects.filter(serial_number__in=serials)
    if since is not None:
        queryset = queryset.filter(updated_at__gt=since)
    return [(str(c.serial_number), c.updated_at) for c in queryset]


PASS_KINDS = {
    'loyalty': PassKind('loyalty', _find_profile, _profiles_since, generate_loyalty_pkpass),
    'giftcard': PassKind('gift card', _find_gift_card, _gift_cards_since, generate_gift_card_pkpass),
}


def _epoch_to_datetime(value):
    try:
        return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


@extend_schema(
    methods=['POST'],
    request=PushTokenSerializer,
    responses={200: None, 201: None, 401: None, 404: None},
    description="Register a device for push updates of a pass.",
    tags=['passkit'],
)
@extend_schema(
    methods=['DELETE'],
    responses={200: None, 401: None},
    description="Unregister a device from a pass.",
    tags=['passkit'],
)
@api_view(['POST', 'DELETE'])
@authentication_classes([])
@permission_classes([AllowAny])
def device_registration(request, device_library_identifier, pass_type_identifier, serial_number, kind):
    if not is_authorized(request, serial_number):
        return _plain('Unauthorized', status.HTTP_401_UNAUTHORIZED)

    if request.method == 'DELETE':
        unregister_device(
            device_library_identifier=device_library_identifier,
            pass_type_identifier=pass_type_identifier,
            serial_number=serial_number,
        )
        return _plain('OK', status.HTTP_200_OK)

    if PASS_KINDS[kind].lookup(serial_number) is None:
        return _plain('Pass not found', status.HTTP_404_NOT_FOUND)

    serializer = PushTokenSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    _, created = register_device(
        device_library_identifier=device_library_identifier,
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
        push_token=serializer.validated_data['pushToken'],
    )
    if created:
        return _plain('Created', status.HTTP_201_CREATED)
    return _plain('OK', status.HTTP_200_OK)


@extend_schema(
    parameters=[OpenApiParameter('passesUpdatedSince', str)],
    responses={200: SerialNumbersResponseSerializer, 204: None},
    description="Serial numbers registered on a device that changed since the given tag.",
    tags=['passkit'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def device_serial_numbers(request, device_library_identifier, pass_type_identifier, kind):
    serials = [
        pk for pk in (
            _parse_uuid(serial) for serial in serials_for_device(
                device_library_identifier=device_library_identifier,
                pass_type_identifier=pass_type_identifier,
            )
        ) if pk is not None
    ]
    since = _epoch_to_datetime(request.query_params.get('passesUpdatedSince'))

    updated = PASS_KINDS[kind].updated_since(serials, since) if serials else []
    if not updated:
        return HttpResponse(status=status.HTTP_204_NO_CONTENT)

    last_updated = max(updated_at for _, updated_at in updated)
    return Response({
        'serialNumbers': sorted(serial for serial, _ in updated),
        'lastUpdated': str(int(last_updated.timestamp())),
    })


@extend_schema(
    responses={(200, PKPASS_CONTENT_TYPE): OpenApiTypes.BINARY, 304: None, 401: None, 404: None},
    description="Latest version of a pass, or 304 when unchanged since If-Modified-Since.",
    tags=['passkit'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def latest_pass(request, pass_type_identifier, serial_number, kind):
    if not is_authorized(request, serial_number):
        return _plain('Unauthorized', status.HTTP_401_UNAUTHORIZED)

    pass_kind = PASS_KINDS[kind]
    record = pass_kind.lookup(serial_number)
    if record is None:
        return _plain('Pass not found', status.HTTP_404_NOT_FOUND)

    modified_since = parse_http_date_safe(request.headers.get('If-Modified-Since', ''))
    if modified_since is not None and int(record.updated_at.timestamp()) <= modified_since:
        return HttpResponse(status=status.HTTP_304_NOT_MODIFIED)

    try:
        content = pass_kind.generate(record)
    except PassCertificatesNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except PassSigningError:
        logger.exception("Failed to sign %s pass %s", pass_kind.label, serial_number)
        return Response({'error': 'Failed to generate pass'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _pkpass_response(content, f'{serial_number}.pkpass', last_modified=record.updated_at)


@extend_schema(
    request=DeviceLogSerializer,
    responses={200: None},
    description="Error messages reported by Wallet on the device.",
    tags=['passkit'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def device_log(request, kind):
    serializer = DeviceLogSerializer(data=request.data)
    if serializer.is_valid():
        for message in serializer.validated_data['logs']:
            logger.warning("PassKit device log (%s): %s", kind, message)
    else:
        logger.warning("Malformed PassKit log payload: %s", serializer.errors)
    return _plain('OK', status.HTTP_200_OK)


# =============================================================================
# Pass downloads
# =============================================================================

@extend_schema(
    responses={
        (200, PKPASS_CONTENT_TYPE): OpenApiTypes.BINARY,
        404: ErrorResponseSerializer,
        500: ErrorResponseSerializer,
    },
    description="Apple Wallet loyalty card of the signed-in customer.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
@never_cache
def loyalty_pass(request):
    try:
        profile = request.user.profile
    except Profile.DoesNotExist:
        return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        content = generate_loyalty_pkpass(profile)
    except PassCertificatesNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except PassSigningError:
        logger.exception("Failed to sign loyalty pass %s", profile.id)
        return Response({'error': 'Failed to generate pass'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _pkpass_response(content, 'vigo-coffee-loyalty.pkpass', last_modified=profile.updated_at)


@extend_schema(
    parameters=[
        OpenApiParameter('shareToken', str),
        OpenApiParameter('serialNumber', str),
    ],
    responses={
        (200, PKPASS_CONTENT_TYPE): OpenApiTypes.BINARY,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
        500: ErrorResponseSerializer,
    },
    description="Apple Wallet pass for a gift card, by share token or serial number.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
@never_cache
def gift_card_pass(request):
    share_token = request.query_params.get('shareToken')
    serial_number = request.query_params.get('serialNumber')

    if share_token:
        gift_card = GiftCard.objects.filter(share_token=share_token).first()
    elif serial_number:
        gift_card = _find_gift_card(serial_number)
    else:
        return Response(
            {'error': 'Share token or serial number is required'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if gift_card is None:
        return Response({'error': 'Gift card not found'}, status=status.HTTP_404_NOT_FOUND)
    if not gift_card.is_active:
        return Response({'error': 'Gift card is not active'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        content = generate_gift_card_pkpass(gift_card)
    except PassCertificatesNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except PassSigningError:
        logger.exception("Failed to sign gift card pass %s", gift_card.serial_number)
        return Response({'error': 'Failed to generate pass'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _pkpass_response(
        content,
        f'vigo-gift-card-{gift_card.serial_number}.pkpass',
        last_modified=gift_card.updated_at,
    )


# =============================================================================
# Google Wallet
# =============================================================================

@extend_schema(
    responses={
        200: GoogleWalletResponseSerializer,
        404: ErrorResponseSerializer,
        500: ErrorResponseSerializer,
    },
    description="Create or refresh the customer's Google Wallet object and return its save link.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
@never_cache
def google_wallet_create(request):
    if not is_google_wallet_configured():
        return Response(
            {'error': 'Google Wallet is not configured'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        profile = request.user.profile
    except Profile.DoesNotExist:
        return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        result = create_or_update_pass(profile)
    except GoogleWalletNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except GoogleWalletAPIError as e:
        logger.error("Google Wallet rejected pass for profile %s: %s", profile.id, e)
        return Response(
            {'error': 'Failed to create Google Wallet pass'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response({'success': True, **result})


@extend_schema(
    responses={(200, 'image/png'): OpenApiTypes.BINARY, 404: ErrorResponseSerializer},
    description="Stamp card image used as the Google Wallet hero image.",
    tags=['wallet'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def google_wallet_background(request, profile_id):
    profile = Profile.objects.filter(id=profile_id).first()
    if profile is None:
        return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)

    response = HttpResponse(render_loyalty_background(profile.points_balance), content_type='image/png')
    response['Cache-Control'] = 'public, max-age=300'
    return response
