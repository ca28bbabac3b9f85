from django.contrib import admin
from .models import Employee, EmployeeInvitation


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ['username', 'full_name', 'email', 'is_active', 'is_admin', 'created_at']
    list_filter = ['is_active', 'is_admin']
    search_fields = ['username', 'full_name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    raw_id_fields = ['user']
    ordering = ['-created_at']


@admin.register(EmployeeInvitation)
class EmployeeInvitationAdmin(admin.ModelAdmin):
    list_display = ['email', 'status', 'expires_at', 'used_at', 'invited_by', 'created_at']
    search_fields = ['email']
    readonly_fields = ['id', 'token', 'created_at']
    ordering = ['-created_at']

    @admin.display(description='Status')
    def status(self, obj):
        return obj.status.label
