"""Device registrations for pass update pushes."""

import logging

from ..models import PassRegistration

logger = logging.getLogger(__name__)


def register_device(*, device_library_identifier, pass_type_identifier, serial_number, push_token=None):
    """
    Record that a device holds a pass.

    Returns:
        tuple: (PassRegistration, created). An existing registration gets the
        new push token.
    """
    registration, created = PassRegistration.objects.update_or_create(
        device_library_identifier=device_library_identifier,
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
        defaults={'push_token': push_token or None},
    )
    logger.info(
        "Pass %s %s on device %s",
        serial_number,
        'registered' if created else 're-registered',
        device_library_identifier,
    )
    return registration, created


def unregister_device(*, device_library_identifier, pass_type_identifier, serial_number):
    deleted, _ = PassRegistration.objects.filter(
        device_library_identifier=device_library_identifier,
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
    ).delete()
    if deleted:
        logger.info("Pass %s unregistered from device %s", serial_number, device_library_identifier)
    return deleted


def serials_for_device(*, device_library_identifier, pass_type_identifier):
    return list(
        PassRegistration.objects
        .filter(
            device_library_identifier=device_library_identifier,
            pass_type_identifier=pass_type_identifier,
        )
        .order_by('serial_number')
        .values_list('serial_number', flat=True)
    )


def push_targets(*, serial_number, pass_type_identifier):
    """Registrations for a pass that have a push token."""
    return list(
        PassRegistration.objects
        .filter(serial_number=str(serial_number), pass_type_identifier=pass_type_identifier)
        .exclude(push_token__isnull=True)
        .exclude(push_token='')
    )


def remove_push_token(push_token):
    """Drop every registration using ``push_token``."""
    deleted, _ = PassRegistration.objects.filter(push_token=push_token).delete()
    return deleted
