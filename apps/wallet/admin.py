from django.contrib import admin
from .models import PassRegistration


@admin.register(PassRegistration)
class PassRegistrationAdmin(admin.ModelAdmin):
    list_display = ['serial_number', 'pass_type_identifier', 'device_library_identifier', 'has_push_token', 'updated_at']
    list_filter = ['pass_type_identifier']
    search_fields = ['serial_number', 'device_library_identifier']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['-updated_at']

    @admin.display(boolean=True, description='Push token')
    def has_push_token(self, obj):
        return bool(obj.push_token)
