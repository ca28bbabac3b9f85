"""
Employee permission classes.

Customers and employees share the ``User`` model; an account is staff only
when it has an ``Employee`` row attached.
"""
from rest_framework.permissions import BasePermission


def get_request_employee(request):
    """Return the Employee behind the request, or None."""
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return None
    return getattr(user, 'employee', None)


class IsActiveEmployee(BasePermission):
    """
    Permission: user must have an active employee record.

    Unauthenticated requests are rejected by DRF with 401 before the
    message below is used.
    """

    message = 'Employee access required'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        employee = get_request_employee(request)
        if employee is None:
            self.message = 'Employee access required'
            return False

        if not employee.is_active:
            self.message = 'Employee account is not active'
            return False

        return True


class IsAdminEmployee(IsActiveEmployee):
    """Permission: user must be an active employee with the admin flag."""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False

        if not get_request_employee(request).is_admin:
            self.message = 'Admin access required'
            return False

        return True
