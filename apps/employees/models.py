from django.db import models
from django.utils import timezone
import uuid


class Employee(models.Model):
    """Staff member allowed to scan cards and record purchases."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='employee'
    )
    email = models.EmailField(unique=True, max_length=255)
    username = models.CharField(max_length=50, unique=True)
    full_name = models.CharField(max_length=150, blank=True)

    is_active = models.BooleanField(default=True)
    is_admin = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'employees'
        indexes = [
            models.Index(fields=['is_active']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        role = 'admin' if self.is_admin else 'employee'
        return f"{self.username} ({role})"

    def get_display_name(self):
        return self.full_name or self.username


class InvitationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    USED = 'used', 'Used'
    EXPIRED = 'expired', 'Expired'


class EmployeeInvitation(models.Model):
    """Single-use invitation letting an email address create an employee account."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(max_length=255)
    token = models.CharField(max_length=64, unique=True, db_index=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    invited_by = models.ForeignKey(
        Employee,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='invitations_sent'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'employee_invitations'
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['expires_at']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Invitation for {self.email} ({self.status})"

    @property
    def is_expired(self):
        return self.expires_at < timezone.now()

    @property
    def is_pending(self):
        return self.used_at is None and not self.is_expired

    @property
    def status(self):
        if self.used_at is not None:
            return InvitationStatus.USED
        if self.is_expired:
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING
