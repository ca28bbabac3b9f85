from django.db import models
import uuid


def default_redeemed_rewards():
    return {'coffees': [], 'meals': []}


class Profile(models.Model):
    """
    Loyalty card of a customer.

    The profile id doubles as the wallet pass serial number and is the value
    encoded in the card's QR code.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='profile'
    )

    full_name = models.CharField(max_length=150, null=True, blank=True)
    email = models.EmailField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=32, null=True, blank=True)
    birthday = models.DateField(null=True, blank=True)

    points_balance = models.PositiveIntegerField(default=0)
    total_purchases = models.PositiveIntegerField(default=0)
    # Thresholds already claimed, e.g. {"coffees": [10, 20], "meals": [25]}
    redeemed_rewards = models.JSONField(default=default_redeemed_rewards, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'profiles'
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['-updated_at']),
            models.Index(fields=['-points_balance']),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.get_display_name()} ({self.points_balance} pts)"

    def get_display_name(self):
        return self.full_name or 'Customer'


class TransactionType(models.TextChoices):
    PURCHASE = 'purchase', 'Purchase'
    REDEMPTION_COFFEE = 'redemption_coffee', 'Coffee redemption'
    REDEMPTION_MEAL = 'redemption_meal', 'Meal redemption'


class LoyaltyTransaction(models.Model):
    """Append-only ledger of point changes and reward redemptions."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(
        Profile,
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    employee = models.ForeignKey(
        'employees.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='loyalty_transactions'
    )

    type = models.CharField(max_length=20, choices=TransactionType.choices)
    points_change = models.IntegerField(default=0)
    points_balance_after = models.PositiveIntegerField()
    reward_points_threshold = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'transactions'
        indexes = [
            models.Index(fields=['customer', 'created_at']),
            models.Index(fields=['employee', 'created_at']),
            models.Index(fields=['type', 'created_at']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_type_display()} for {self.customer_id} ({self.points_change:+d})"
