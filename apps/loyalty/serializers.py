from rest_framework import serializers
from .models import Profile, LoyaltyTransaction, TransactionType
from .rewards import REWARD_COFFEE, REWARD_MEAL


class ProfileSerializer(serializers.ModelSerializer):
    """Loyalty profile as listed in the admin dashboard."""

    class Meta:
        model = Profile
        fields = [
            'id',
            'full_name',
            'email',
            'phone',
            'birthday',
            'points_balance',
            'total_purchases',
            'redeemed_rewards',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    """Ledger row with the customer and employee names resolved."""

    customer_name = serializers.CharField(source='customer.full_name', read_only=True)
    customer_email = serializers.CharField(source='customer.email', read_only=True)
    employee_name = serializers.SerializerMethodField()
    employee_username = serializers.SerializerMethodField()

    class Meta:
        model = LoyaltyTransaction
        fields = [
            'id',
            'customer_id',
            'customer_name',
            'customer_email',
            'employee_id',
            'employee_name',
            'employee_username',
            'type',
            'points_change',
            'points_balance_after',
            'reward_points_threshold',
            'created_at',
        ]
        read_only_fields = fields

    def get_employee_name(self, obj):
        return obj.employee.full_name if obj.employee else None

    def get_employee_username(self, obj):
        return obj.employee.username if obj.employee else None


# Input serializers

class PurchaseInputSerializer(serializers.Serializer):
    """Accepts the scanned id as ``customerId`` or ``userId``."""

    customerId = serializers.UUIDField(required=False, allow_null=True)
    userId = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        customer_id = attrs.get('customerId') or attrs.get('userId')
        if not customer_id:
            raise serializers.ValidationError('Customer ID is required')
        return {'customer_id': customer_id}


class RedeemInputSerializer(serializers.Serializer):
    customerId = serializers.UUIDField()
    type = serializers.ChoiceField(
        choices=[REWARD_COFFEE, REWARD_MEAL],
        error_messages={'invalid_choice': "Invalid reward type. Must be 'coffee' or 'meal'"},
    )
    points = serializers.IntegerField(min_value=1)


class ScanQuerySerializer(serializers.Serializer):
    userId = serializers.UUIDField()


class CustomerCreateSerializer(serializers.Serializer):
    fullName = serializers.CharField(
        max_length=150,
        error_messages={
            'required': 'Full name is required',
            'blank': 'Full name is required',
        },
    )
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    birthday = serializers.DateField(required=False, allow_null=True)


class CustomerListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)


class CustomerIdSerializer(serializers.Serializer):
    id = serializers.UUIDField()


class TransactionFilterSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=TransactionType.choices, required=False)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    customerId = serializers.UUIDField(required=False)
    employeeId = serializers.UUIDField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError({'endDate': 'endDate must not be before startDate'})
        return attrs
