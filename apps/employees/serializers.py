from rest_framework import serializers
from .models import Employee, EmployeeInvitation


class EmployeeSerializer(serializers.ModelSerializer):
    """Employee record as shown in the admin dashboard."""

    class Meta:
        model = Employee
        fields = [
            'id',
            'email',
            'username',
            'full_name',
            'is_active',
            'is_admin',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class EmployeeInvitationSerializer(serializers.ModelSerializer):
    """Invitation with its computed pending/used/expired status."""

    status = serializers.CharField(read_only=True)
    invited_by = serializers.SerializerMethodField()

    class Meta:
        model = EmployeeInvitation
        fields = [
            'id',
            'email',
            'token',
            'expires_at',
            'used_at',
            'invited_by',
            'status',
            'created_at',
        ]
        read_only_fields = fields

    def get_invited_by(self, obj):
        return obj.invited_by.username if obj.invited_by else None


# Input serializers

class EmployeeLoginSerializer(serializers.Serializer):
    """Employees sign in with their username or their email."""

    username = serializers.CharField(max_length=255)
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})


class CheckEmployeeSerializer(serializers.Serializer):
    email = serializers.EmailField()


class CreateInvitationSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ValidateInvitationSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)


class AcceptInvitationSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)
    username = serializers.CharField(max_length=50)
    password = serializers.CharField(
        min_length=6,
        write_only=True,
        style={'input_type': 'password'},
        error_messages={'min_length': 'Password must be at least 6 characters'},
    )
    fullName = serializers.CharField(max_length=150)


class EmployeeUpdateSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    full_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    username = serializers.CharField(max_length=50, required=False)
    email = serializers.EmailField(required=False)
    is_active = serializers.BooleanField(required=False)
    is_admin = serializers.BooleanField(required=False)


class EmployeeIdSerializer(serializers.Serializer):
    id = serializers.UUIDField()


class CreateAdminSerializer(serializers.Serializer):
    email = serializers.EmailField()
    username = serializers.CharField(max_length=50)
    password = serializers.CharField(
        min_length=6,
        required=False,
        allow_blank=True,
        write_only=True,
        error_messages={'min_length': 'Password must be at least 6 characters'},
    )
    fullName = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')


class ResetEmployeePasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()
    newPassword = serializers.CharField(
        min_length=6,
        write_only=True,
        error_messages={'min_length': 'Password must be at least 6 characters'},
    )
