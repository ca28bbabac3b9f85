from django.db import models
import uuid


class PassRegistration(models.Model):
    """
    A wallet pass installed on a device.

    Created by the PassKit web service when a device registers for updates,
    deleted when the pass is removed or APNs reports the token as gone.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    device_library_identifier = models.CharField(max_length=255)
    pass_type_identifier = models.CharField(max_length=255)
    serial_number = models.CharField(max_length=255, db_index=True)
    push_token = models.CharField(max_length=255, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'pass_registrations'
        constraints = [
            models.UniqueConstraint(
                fields=['device_library_identifier', 'pass_type_identifier', 'serial_number'],
                name='unique_pass_registration',
            ),
        ]
        indexes = [
            models.Index(fields=['pass_type_identifier', 'serial_number']),
            models.Index(fields=['device_library_identifier', 'pass_type_identifier']),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.serial_number} on {self.device_library_identifier}"
