from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import secrets
import uuid


MINIMUM_INITIAL_BALANCE = Decimal('10.00')


def generate_share_token():
    """64 hex characters, used in the public share link."""
    return secrets.token_hex(32)


class GiftCard(models.Model):
    """Prepaid MXN balance spendable in store, delivered as a wallet pass."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    serial_number = models.UUIDField(unique=True, default=uuid.uuid4, editable=False)

    created_by = models.ForeignKey(
        'employees.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='gift_cards_created'
    )
    recipient_name = models.CharField(max_length=150)
    recipient_user = models.ForeignKey(
        'loyalty.Profile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='gift_cards'
    )

    balance_mxn = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    initial_balance_mxn = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(MINIMUM_INITIAL_BALANCE)]
    )

    share_token = models.CharField(
        max_length=64,
        unique=True,
        default=generate_share_token,
        editable=False
    )
    claimed_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'gift_cards'
        indexes = [
            models.Index(fields=['is_active', 'created_at']),
            models.Index(fields=['-balance_mxn']),
        ]
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                check=models.Q(balance_mxn__gte=0),
                name='gift_card_balance_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.recipient_name} - {self.balance_mxn} MXN"

    @property
    def used_balance_mxn(self):
        return self.initial_balance_mxn - self.balance_mxn


class GiftCardTransaction(models.Model):
    """Balance movement on a gift card. Deductions are negative."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gift_card = models.ForeignKey(
        GiftCard,
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    employee = models.ForeignKey(
        'employees.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='gift_card_transactions'
    )

    amount_mxn = models.DecimalField(max_digits=10, decimal_places=2)
    balance_after_mxn = models.DecimalField(max_digits=10, decimal_places=2)
    description = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'gift_card_transactions'
        indexes = [
            models.Index(fields=['gift_card', 'created_at']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.amount_mxn} MXN on {self.gift_card_id}"
