from django.contrib import admin
from .models import Profile, LoyaltyTransaction


class LoyaltyTransactionInline(admin.TabularInline):
    model = LoyaltyTransaction
    extra = 0
    fields = ['type', 'points_change', 'points_balance_after', 'reward_points_threshold', 'employee', 'created_at']
    readonly_fields = fields
    can_delete = False
    ordering = ['-created_at']


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'email', 'phone', 'points_balance', 'total_purchases', 'updated_at']
    search_fields = ['full_name', 'email', 'phone', 'id']
    readonly_fields = ['id', 'created_at', 'updated_at']
    raw_id_fields = ['user']
    ordering = ['-updated_at']
    inlines = [LoyaltyTransactionInline]


@admin.register(LoyaltyTransaction)
class LoyaltyTransactionAdmin(admin.ModelAdmin):
    list_display = ['customer', 'type', 'points_change', 'points_balance_after', 'employee', 'created_at']
    list_filter = ['type']
    search_fields = ['customer__full_name', 'customer__email', 'employee__username']
    raw_id_fields = ['customer', 'employee']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']
