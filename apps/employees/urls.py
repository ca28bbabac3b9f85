from django.urls import path
from . import views

app_name = 'employees'

urlpatterns = [
    # Employee authentication
    path('auth/employee/login/', views.employee_login, name='login'),
    path('auth/employee/check/', views.check_employee, name='check'),

    # Invitations
    path('admin/create-invitation/', views.create_invitation, name='create-invitation'),
    path('admin/validate-invitation/', views.validate_invitation, name='validate-invitation'),
    path('admin/accept-invitation/', views.accept_invitation, name='accept-invitation'),
    path('admin/invitations/', views.list_invitations, name='invitations'),

    # Employee management
    path('admin/employees/', views.employees, name='employees'),
    path('admin/create-admin/', views.create_admin, name='create-admin'),
    path('admin/reset-password/', views.reset_password, name='reset-password'),
]
