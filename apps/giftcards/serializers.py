from decimal import Decimal

from rest_framework import serializers
from .models import GiftCard, GiftCardTransaction, MINIMUM_INITIAL_BALANCE
from .services import build_share_link


class GiftCardTransactionSerializer(serializers.ModelSerializer):
    """Balance movement on a gift card."""

    employee_name = serializers.SerializerMethodField()

    class Meta:
        model = GiftCardTransaction
        fields = [
            'id',
            'amount_mxn',
            'balance_after_mxn',
            'description',
            'employee_id',
            'employee_name',
            'created_at',
        ]
        read_only_fields = fields

    def get_employee_name(self, obj):
        if obj.employee is None:
            return None
        return obj.employee.full_name or obj.employee.username


class GiftCardSerializer(serializers.ModelSerializer):
    """Gift card as shown to employees, including its shareable link."""

    used_balance_mxn = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    shareable_link = serializers.SerializerMethodField()
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = GiftCard
        fields = [
            'id',
            'serial_number',
            'recipient_name',
            'recipient_user_id',
            'balance_mxn',
            'initial_balance_mxn',
            'used_balance_mxn',
            'share_token',
            'shareable_link',
            'claimed_at',
            'is_active',
            'created_by_id',
            'created_by_name',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_shareable_link(self, obj):
        return build_share_link(obj.share_token)

    def get_created_by_name(self, obj):
        if obj.created_by is None:
            return None
        return obj.created_by.full_name or obj.created_by.username


class GiftCardDetailSerializer(GiftCardSerializer):
    """Gift card with its ledger and the linked loyalty profile."""

    transactions = GiftCardTransactionSerializer(many=True, read_only=True)
    recipient_profile = serializers.SerializerMethodField()

    class Meta(GiftCardSerializer.Meta):
        fields = GiftCardSerializer.Meta.fields + ['transactions', 'recipient_profile']
        read_only_fields = fields

    def get_recipient_profile(self, obj):
        profile = obj.recipient_user
        if profile is None:
            return None
        return {
            'id': str(profile.id),
            'full_name': profile.full_name,
            'email': profile.email,
        }


class GiftCardPublicSerializer(serializers.ModelSerializer):
    """Fields safe to show on the public share page."""

    class Meta:
        model = GiftCard
        fields = [
            'serial_number',
            'recipient_name',
            'balance_mxn',
            'initial_balance_mxn',
            'is_active',
            'created_at',
        ]
        read_only_fields = fields


# Input serializers

class GiftCardCreateSerializer(serializers.Serializer):
    recipientName = serializers.CharField(
        max_length=150,
        error_messages={
            'required': 'Recipient name is required',
            'blank': 'Recipient name is required',
        },
    )
    initialBalanceMxn = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=MINIMUM_INITIAL_BALANCE,
        error_messages={
            'required': 'Initial balance is required',
            'min_value': f'Initial balance must be at least {MINIMUM_INITIAL_BALANCE} MXN',
        },
    )

    def validate_recipientName(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Recipient name is required')
        return value


class StrictBooleanField(serializers.BooleanField):
    """Only JSON true/false count; anything else is left out of the update."""

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            raise serializers.SkipField()
        return data


class GiftCardUpdateSerializer(serializers.Serializer):
    is_active = StrictBooleanField(required=False)


class GiftCardFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=['active', 'inactive', 'all'],
        required=False,
        default='all',
    )
    search = serializers.CharField(required=False, allow_blank=True)


class GiftCardScanQuerySerializer(serializers.Serializer):
    serialNumber = serializers.UUIDField(
        error_messages={
            'required': 'Serial number is required',
            'invalid': 'Invalid serial number',
        },
    )


class GiftCardChargeSerializer(serializers.Serializer):
    """The sale total arrives as ``saleTotal`` or ``amount``."""

    giftCardId = serializers.UUIDField(
        error_messages={'required': 'Gift card ID is required'},
    )
    saleTotal = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)

    def validate(self, attrs):
        amount = attrs.get('saleTotal')
        if amount is None:
            amount = attrs.get('amount')
        if amount is None or amount <= Decimal('0'):
            raise serializers.ValidationError('Amount must be greater than 0')
        return {'gift_card_id': attrs['giftCardId'], 'amount': amount}
