"""
Apple Push Notification service for wallet pass updates.

A pass update push carries an empty payload; the device then asks the
PassKit web service for the serials that changed and downloads the new
pass. Pushes go over HTTP/2 with an ES256 provider token.
"""

import logging
import threading
import time
from pathlib import Path

import httpx
import jwt
from django.conf import settings

from apps.loyalty.rewards import reward_message
from .registrations import push_targets, remove_push_token

logger = logging.getLogger(__name__)

PRODUCTION_HOST = 'https://api.push.apple.com'
SANDBOX_HOST = 'https://api.sandbox.push.apple.com'

# Apple rejects provider tokens older than an hour
PROVIDER_TOKEN_TTL = 50 * 60

_token_lock = threading.Lock()
_provider_token = {'value': None, 'issued_at': 0.0}


def is_push_configured():
    return bool(
        settings.APNS_KEY_ID
        and settings.APNS_TEAM_ID
        and settings.APNS_KEY_PATH
        and settings.PASS_TYPE_ID
    )


def _signing_key():
    return Path(settings.APNS_KEY_PATH).read_text()


def provider_token():
    """Cached ES256 JWT identifying the team to APNs."""
    now = time.time()
    with _token_lock:
        if _provider_token['value'] and now - _provider_token['issued_at'] < PROVIDER_TOKEN_TTL:
            return _provider_token['value']

        token = jwt.encode(
            {'iss': settings.APNS_TEAM_ID, 'iat': int(now)},
            _signing_key(),
            algorithm='ES256',
            headers={'kid': settings.APNS_KEY_ID},
        )
        _provider_token.update(value=token, issued_at=now)
        return token


def reset_provider_token():
    with _token_lock:
        _provider_token.update(value=None, issued_at=0.0)


class APNsClient:
    """HTTP/2 connection to APNs, usable as a context manager."""

    def __init__(self, timeout=None):
        self.host = PRODUCTION_HOST if settings.APNS_PRODUCTION else SANDBOX_HOST
        self._http = httpx.Client(
            http2=True,
            timeout=timeout or settings.APNS_TIMEOUT_SECONDS,
        )

    def send(self, push_token, topic):
        """
        Push an empty payload to one device.

        Returns:
            int: The APNs status code.
        """
        response = self._http.post(
            f'{self.host}/3/device/{push_token}',
            content=b'{}',
            headers={
                'authorization': f'bearer {provider_token()}',
                'apns-topic': topic,
                'apns-push-type': 'background',
                'apns-priority': '5',
            },
        )
        if response.status_code != 200:
            logger.warning(
                "APNs rejected push to %s...: %s %s",
                push_token[:8], response.status_code, response.text,
            )
        return response.status_code

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def notify_pass_update(serial_number, pass_type_identifier=None):
    """
    Tell every device holding the pass to fetch it again.

    Returns:
        int: Devices notified. When APNs is not configured nothing is sent
        and the number of registered devices is returned.
    """
    pass_type_identifier = pass_type_identifier or settings.PASS_TYPE_ID
    registrations = push_targets(
        serial_number=serial_number,
        pass_type_identifier=pass_type_identifier,
    )
    if not registrations:
        logger.debug("No registered devices for pass %s", serial_number)
        return 0

    if not is_push_configured():
        logger.info(
            "APNs not configured; skipping push to %d device(s) for pass %s",
            len(registrations), serial_number,
        )
        return len(registrations)

    notified = 0
    with APNsClient() as client:
        for registration in registrations:
            try:
                status_code = client.send(registration.push_token, pass_type_identifier)
            except httpx.HTTPError:
                logger.exception("APNs request failed for pass %s", serial_number)
                continue

            if status_code == 200:
                notified += 1
            elif status_code == 410:
                remove_push_token(registration.push_token)
                logger.info("Removed expired push token for pass %s", serial_number)

    logger.info("Notified %d/%d device(s) for pass %s", notified, len(registrations), serial_number)
    return notified


def notify_reward_earned(serial_number, reward_type, pass_type_identifier=None):
    logger.info("Reward earned for %s: %s", serial_number, reward_message(reward_type))
    return notify_pass_update(serial_number, pass_type_identifier)


def notify_gift_card_update(serial_number):
    return notify_pass_update(serial_number, settings.GIFT_CARD_PASS_TYPE_ID)
