from django.contrib import admin
from .models import GiftCard, GiftCardTransaction


class GiftCardTransactionInline(admin.TabularInline):
    model = GiftCardTransaction
    extra = 0
    fields = ['amount_mxn', 'balance_after_mxn', 'description', 'employee', 'created_at']
    readonly_fields = fields
    can_delete = False
    ordering = ['-created_at']


@admin.register(GiftCard)
class GiftCardAdmin(admin.ModelAdmin):
    list_display = ['recipient_name', 'serial_number', 'balance_mxn', 'initial_balance_mxn', 'is_active', 'claimed_at', 'created_at']
    list_filter = ['is_active']
    search_fields = ['recipient_name', 'serial_number']
    readonly_fields = ['id', 'serial_number', 'share_token', 'claimed_at', 'created_at', 'updated_at']
    raw_id_fields = ['created_by', 'recipient_user']
    ordering = ['-created_at']
    inlines = [GiftCardTransactionInline]


@admin.register(GiftCardTransaction)
class GiftCardTransactionAdmin(admin.ModelAdmin):
    list_display = ['gift_card', 'amount_mxn', 'balance_after_mxn', 'description', 'employee', 'created_at']
    search_fields = ['gift_card__recipient_name', 'gift_card__serial_number', 'description']
    raw_id_fields = ['gift_card', 'employee']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']
