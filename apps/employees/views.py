from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from apps.accounts.services import issue_tokens
from .permissions import IsAdminEmployee, get_request_employee
from .serializers import (
    EmployeeSerializer,
    EmployeeInvitationSerializer,
    EmployeeLoginSerializer,
    CheckEmployeeSerializer,
    CreateInvitationSerializer,
    ValidateInvitationSerializer,
    AcceptInvitationSerializer,
    EmployeeUpdateSerializer,
    EmployeeIdSerializer,
    CreateAdminSerializer,
    ResetEmployeePasswordSerializer,
)
from .services import (
    authenticate_employee,
    check_employee as check_employee_service,
    build_invite_url,
    create_invitation as create_invitation_service,
    validate_invitation as validate_invitation_service,
    accept_invitation as accept_invitation_service,
    list_invitations as list_invitations_service,
    list_employees,
    update_employee,
    deactivate_employee,
    create_admin as create_admin_service,
    reset_employee_password,
    InvalidEmployeeCredentialsError,
    EmployeeNotFoundError,
    EmployeeInactiveError,
    InvitationInvalidError,
    InvitationExpiredError,
    UsernameTakenError,
    EmployeeAlreadyExistsError,
    SelfProtectionError,
)


# Response serializers for API documentation
class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class EmployeeLoginResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    employee = EmployeeSerializer()
    tokens = serializers.DictField(child=serializers.CharField())


class InvitationCreatedResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    invitation = EmployeeInvitationSerializer()
    inviteUrl = serializers.URLField()


# =============================================================================
# Employee authentication
# =============================================================================

@extend_schema(
    request=EmployeeLoginSerializer,
    responses={
        200: EmployeeLoginResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Employee sign-in with username or email.",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def employee_login(request):
    serializer = EmployeeLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        employee = authenticate_employee(**serializer.validated_data)
    except InvalidEmployeeCredentialsError as e:
        return Response({'error': str(e)}, status=status.HTTP_401_UNAUTHORIZED)
    except EmployeeInactiveError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    return Response({
        'success': True,
        'email': employee.email,
        'userId': str(employee.user_id),
        'employee': EmployeeSerializer(employee).data,
        'tokens': issue_tokens(employee.user),
    })


@extend_schema(
    request=CheckEmployeeSerializer,
    responses={
        200: EmployeeSerializer,
        403: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Check whether an email belongs to an active employee.",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def check_employee(request):
    serializer = CheckEmployeeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        employee = check_employee_service(email=serializer.validated_data['email'])
    except EmployeeNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except EmployeeInactiveError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    return Response({
        'success': True,
        'employee': EmployeeSerializer(employee).data,
    })


# =============================================================================
# Invitations
# =============================================================================

@extend_schema(
    request=CreateInvitationSerializer,
    responses={
        201: InvitationCreatedResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Invite an email address to create an employee account (admin only).",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([IsAdminEmployee])
def create_invitation(request):
    serializer = CreateInvitationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        invitation = create_invitation_service(
            email=serializer.validated_data['email'],
            invited_by=get_request_employee(request),
        )
    except EmployeeAlreadyExistsError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'invitation': EmployeeInvitationSerializer(invitation).data,
        'inviteUrl': build_invite_url(invitation.token),
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    parameters=[OpenApiParameter('token', str, required=True)],
    responses={
        200: EmployeeInvitationSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Check an invitation token before showing the sign-up form.",
    tags=['employees'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def validate_invitation(request):
    serializer = ValidateInvitationSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    try:
        invitation = validate_invitation_service(token=serializer.validated_data['token'])
    except InvitationInvalidError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except InvitationExpiredError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'invitation': {
            'email': invitation.email,
            'expires_at': invitation.expires_at,
        },
    })


@extend_schema(
    request=AcceptInvitationSerializer,
    responses={
        201: EmployeeSerializer,
        400: ErrorResponseSerializer,
    },
    description="Create the employee account for an invitation.",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def accept_invitation(request):
    serializer = AcceptInvitationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        employee = accept_invitation_service(
            token=data['token'],
            username=data['username'],
            password=data['password'],
            full_name=data['fullName'],
        )
    except (
        InvitationInvalidError,
        InvitationExpiredError,
        UsernameTakenError,
        EmployeeAlreadyExistsError,
    ) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'message': 'Account created successfully',
        'employee': EmployeeSerializer(employee).data,
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: EmployeeInvitationSerializer(many=True)},
    description="List invitations, newest first (admin only).",
    tags=['employees'],
)
@api_view(['GET'])
@permission_classes([IsAdminEmployee])
def list_invitations(request):
    invitations = list_invitations_service()
    return Response({
        'success': True,
        'invitations': EmployeeInvitationSerializer(invitations, many=True).data,
    })


# =============================================================================
# Employee management (admin)
# =============================================================================

@extend_schema(
    methods=['GET'],
    responses={200: EmployeeSerializer(many=True)},
    description="List all employees, newest first.",
    tags=['employees'],
)
@extend_schema(
    methods=['PUT'],
    request=EmployeeUpdateSerializer,
    responses={200: EmployeeSerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Update an employee's name, username, email, status or role.",
    tags=['employees'],
)
@extend_schema(
    methods=['DELETE'],
    parameters=[OpenApiParameter('id', str, required=True)],
    responses={200: None, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Deactivate an employee (soft delete).",
    tags=['employees'],
)
@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminEmployee])
def employees(request):
    acting_employee = get_request_employee(request)

    if request.method == 'GET':
        return Response({
            'success': True,
            'employees': EmployeeSerializer(list_employees(), many=True).data,
        })

    if request.method == 'PUT':
        serializer = EmployeeUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        employee_id = changes.pop('id')

        try:
            employee = update_employee(
                employee_id=employee_id,
                acting_employee=acting_employee,
                **changes,
            )
        except EmployeeNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (UsernameTakenError, EmployeeAlreadyExistsError, SelfProtectionError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({'success': True, 'employee': EmployeeSerializer(employee).data})

    serializer = EmployeeIdSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    try:
        deactivate_employee(
            employee_id=serializer.validated_data['id'],
            acting_employee=acting_employee,
        )
    except EmployeeNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except SelfProtectionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'success': True})


@extend_schema(
    request=CreateAdminSerializer,
    responses={201: EmployeeSerializer, 400: ErrorResponseSerializer},
    description="Create an admin employee directly. A temporary password is returned once when none is given.",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([IsAdminEmployee])
def create_admin(request):
    serializer = CreateAdminSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        employee, temporary_password = create_admin_service(
            email=data['email'],
            username=data['username'],
            password=data.get('password') or None,
            full_name=data.get('fullName', ''),
        )
    except (EmployeeAlreadyExistsError, UsernameTakenError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    payload = {
        'success': True,
        'message': 'Admin created successfully',
        'employee': EmployeeSerializer(employee).data,
    }
    if temporary_password:
        payload['temporaryPassword'] = temporary_password
        payload['message'] = (
            'Admin created successfully. Please save this temporary password '
            'and change it on first login.'
        )
    return Response(payload, status=status.HTTP_201_CREATED)


@extend_schema(
    request=ResetEmployeePasswordSerializer,
    responses={200: None, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Set a new password for an employee (admin only).",
    tags=['employees'],
)
@api_view(['POST'])
@permission_classes([IsAdminEmployee])
def reset_password(request):
    serializer = ResetEmployeePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        reset_employee_password(
            email=serializer.validated_data['email'],
            new_password=serializer.validated_data['newPassword'],
        )
    except EmployeeNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response({'success': True, 'message': 'Password updated successfully'})
