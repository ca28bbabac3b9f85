"""
Google Wallet loyalty passes.

Google keeps the pass itself: we define one loyalty class (the template)
and one loyalty object per customer, then update the object through the
REST API whenever the balance changes. Customers add the object to their
wallet through a signed "Save to Google Wallet" link.
"""

import base64
import hashlib
import json
import logging
import re
import threading
import time

import httpx
import jwt
from django.conf import settings

from apps.loyalty.rewards import calculate_rewards, MESSAGE_NONE
from .apple_passes import member_name, REWARD_STRUCTURE, ORGANIZATION_NAME
from .base_url import get_base_url, is_public_url
from .exceptions import GoogleWalletNotConfiguredError, GoogleWalletAPIError

logger = logging.getLogger(__name__)

API_BASE = 'https://walletobjects.googleapis.com/walletobjects/v1'
TOKEN_URI = 'https://oauth2.googleapis.com/token'
SCOPE = 'https://www.googleapis.com/auth/wallet_object.issuer'
SAVE_URL = 'https://pay.google.com/gp/v/save/'

DEFAULT_CLASS_SUFFIX = 'loyaltyvigocoffee'
MAX_CLASS_SUFFIX_LENGTH = 50
SAVE_JWT_TTL = 3600
TOKEN_REFRESH_MARGIN = 60

_token_lock = threading.Lock()
_access_token = {'value': None, 'expires_at': 0.0}


# =============================================================================
# Configuration
# =============================================================================

def is_google_wallet_configured():
    return bool(
        settings.GOOGLE_WALLET_ISSUER_ID
        and settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL
        and settings.GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64
    )


def get_issuer_id():
    if not settings.GOOGLE_WALLET_ISSUER_ID:
        raise GoogleWalletNotConfiguredError('GOOGLE_WALLET_ISSUER_ID is not configured')
    return settings.GOOGLE_WALLET_ISSUER_ID


def get_class_suffix():
    """
    Class suffix from ``GOOGLE_WALLET_CLASS_ID``.

    A full ``issuer.suffix`` id is reduced to its suffix. Only letters,
    digits, dots, underscores and hyphens are kept; anything shorter than
    three characters falls back to the default.
    """
    suffix = settings.GOOGLE_WALLET_CLASS_ID or DEFAULT_CLASS_SUFFIX
    issuer_id = settings.GOOGLE_WALLET_ISSUER_ID
    if issuer_id and suffix.startswith(f'{issuer_id}.'):
        suffix = suffix[len(issuer_id) + 1:]

    suffix = re.sub(r'[^a-zA-Z0-9._-]', '', suffix)
    if len(suffix) < 3:
        suffix = DEFAULT_CLASS_SUFFIX
    return suffix[:MAX_CLASS_SUFFIX_LENGTH]


def get_class_id():
    return f'{get_issuer_id()}.{get_class_suffix()}'


def get_object_id(profile_id):
    digest = hashlib.sha256(str(profile_id).encode()).hexdigest()
    return f'{get_issuer_id()}.{digest[:16]}'


def load_service_account():
    """Decoded service account key with ``client_email`` and ``private_key``."""
    if not is_google_wallet_configured():
        raise GoogleWalletNotConfiguredError()
    try:
        key = json.loads(base64.b64decode(settings.GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64))
    except (ValueError, TypeError) as e:
        raise GoogleWalletNotConfiguredError(f'Invalid service account key: {e}') from e

    return {
        'client_email': key.get('client_email') or settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL,
        'private_key': (key.get('private_key') or '').replace('\\n', '\n'),
        'token_uri': key.get('token_uri') or TOKEN_URI,
    }


# =============================================================================
# OAuth
# =============================================================================

def get_access_token(http=None):
    """
    OAuth access token for the service account, cached until shortly before
    it expires.
    """
    now = time.time()
    with _token_lock:
        if _access_token['value'] and now < _access_token['expires_at']:
            return _access_token['value']

        account = load_service_account()
        assertion = jwt.encode(
            {
                'iss': account['client_email'],
                'scope': SCOPE,
                'aud': account['token_uri'],
                'iat': int(now),
                'exp': int(now) + 3600,
            },
            account['private_key'],
            algorithm='RS256',
        )

        client = http or httpx.Client(timeout=settings.GOOGLE_WALLET_TIMEOUT_SECONDS)
        try:
            response = client.post(account['token_uri'], data={
                'grant_type': 'urn:ietf:params:oauth:grant-type:jwt-bearer',
                'assertion': assertion,
            })
        finally:
            if http is None:
                client.close()

        if response.status_code != 200:
            raise GoogleWalletAPIError(
                f'Token request failed: {response.text}',
                status_code=response.status_code,
            )

        payload = response.json()
        if not payload.get('access_token'):
            raise GoogleWalletAPIError('Token response has no access_token', status_code=response.status_code)
        _access_token['value'] = payload['access_token']
        _access_token['expires_at'] = now + int(payload.get('expires_in', 3600)) - TOKEN_REFRESH_MARGIN
        return _access_token['value']


def reset_access_token():
    with _token_lock:
        _access_token.update(value=None, expires_at=0.0)


class GoogleWalletClient:
    """Thin wrapper over the Wallet Objects REST API."""

    def __init__(self, timeout=None):
        self._http = httpx.Client(timeout=timeout or settings.GOOGLE_WALLET_TIMEOUT_SECONDS)

    def _request(self, method, path, body=None):
        return self._http.request(
            method,
            f'{API_BASE}/{path}',
            json=body,
            headers={'Authorization': f'Bearer {get_access_token(self._http)}'},
        )

    def get_class(self, class_id):
        return self._request('GET', f'loyaltyClass/{class_id}')

    def insert_class(self, body):
        return self._request('POST', 'loyaltyClass', body)

    def patch_class(self, class_id, body):
        return self._request('PATCH', f'loyaltyClass/{class_id}', body)

    def get_object(self, object_id):
        return self._request('GET', f'loyaltyObject/{object_id}')

    def insert_object(self, body):
        return self._request('POST', 'loyaltyObject', body)

    def update_object(self, object_id, body):
        return self._request('PUT', f'loyaltyObject/{object_id}', body)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _raise_for(response, action):
    raise GoogleWalletAPIError(
        f'Failed to {action}: {response.status_code} {response.text}',
        status_code=response.status_code,
    )


# =============================================================================
# Loyalty class
# =============================================================================

def _localized(value):
    return {'defaultValue': {'language': 'en-US', 'value': value}}


def build_loyalty_class(base_url):
    return {
        'id': get_class_id(),
        'issuerName': ORGANIZATION_NAME,
        'reviewStatus': 'UNDER_REVIEW',
        'programName': 'Vigo Coffee Loyalty Program',
        'programLogo': {
            'sourceUri': {'uri': f'{base_url}/logo.png'},
            'contentDescription': _localized('Vigo Coffee Logo'),
        },
        'hexBackgroundColor': '#000000',
        'localizedIssuerName': _localized(ORGANIZATION_NAME),
        'localizedProgramName': _localized('Loyalty Program'),
    }


def ensure_loyalty_class(client, base_url=None):
    """
    Make sure the loyalty class exists and return its id.

    Classes created in the Google Pay console may answer 400 or 403 to API
    reads; those are treated as existing.
    """
    class_id = get_class_id()
    response = client.get_class(class_id)
    if response.status_code in (200, 400, 403):
        return class_id
    if response.status_code != 404:
        logger.warning("Unexpected status %s reading class %s", response.status_code, class_id)

    response = client.insert_class(build_loyalty_class(base_url or get_base_url()))
    if response.status_code in (200, 201, 400, 403, 409):
        if response.status_code in (400, 403):
            logger.warning("Class %s insert answered %s; using it as-is", class_id, response.status_code)
        else:
            logger.info("Loyalty class %s ready", class_id)
        return class_id

    _raise_for(response, f'create loyalty class {class_id}')


def update_loyalty_class(client, base_url=None):
    class_id = get_class_id()
    body = build_loyalty_class(base_url or get_base_url())
    body.pop('reviewStatus')
    response = client.patch_class(class_id, body)
    if response.status_code != 200:
        _raise_for(response, f'update loyalty class {class_id}')
    return class_id


# =============================================================================
# Loyalty objects
# =============================================================================

def hero_image_url(profile_id, base_url=None):
    """Background image URL, or None when Google cannot reach the server."""
    base_url = base_url or get_base_url()
    if not is_public_url(base_url):
        return None
    return f'{base_url}/api/google-wallet/background/{profile_id}/?ts={int(time.time())}'


def build_loyalty_object(profile, *, class_id=None, object_id=None, image_url=None):
    profile_id = str(profile.id)
    points = int(profile.points_balance or 0)
    rewards = calculate_rewards(points, profile.redeemed_rewards)
    name = member_name(profile)

    loyalty_object = {
        'id': object_id or get_object_id(profile_id),
        'classId': class_id or get_class_id(),
        'state': 'ACTIVE',
        'accountName': name,
        'accountId': profile_id,
        'loyaltyPoints': {
            'balance': {'int': points},
            'label': 'Points',
        },
        'barcode': {
            'type': 'QR_CODE',
            'value': profile_id,
            'alternateText': f'{profile_id[:8]}...',
        },
        'textModulesData': [
            {'id': 'member', 'header': 'MEMBER', 'body': name},
            {
                'id': 'reward',
                'header': rewards['reward_label'] or 'Status',
                'body': rewards['reward_message'] or MESSAGE_NONE,
            },
            {'id': 'rewardStructure', 'header': 'Reward Structure', 'body': REWARD_STRUCTURE},
        ],
    }

    if image_url:
        loyalty_object['heroImage'] = {
            'sourceUri': {'uri': image_url},
            'contentDescription': _localized(
                f"Loyalty card with {points} points - {rewards['reward_message']}"
            ),
        }
    return loyalty_object


def create_save_jwt(object_id, origins=None):
    """Signed "Save to Google Wallet" token for an existing loyalty object."""
    account = load_service_account()
    now = int(time.time())
    claims = {
        'iss': account['client_email'],
        'aud': 'google',
        'typ': 'savetowallet',
        'iat': now,
        'exp': now + SAVE_JWT_TTL,
        'origins': origins or [get_base_url()],
        'payload': {'loyaltyObjects': [{'id': object_id}]},
    }
    return jwt.encode(claims, account['private_key'], algorithm='RS256')


def save_url(object_id):
    return f'{SAVE_URL}{create_save_jwt(object_id)}'


def create_or_update_pass(profile):
    """
    Ensure the class and the customer's object exist with current data.

    Returns:
        dict: ``objectId`` and ``saveUrl`` for the "Add to Google Wallet" button.

    Raises:
        GoogleWalletNotConfiguredError: Credentials are missing.
        GoogleWalletAPIError: Google rejected the class or object.
    """
    if not is_google_wallet_configured():
        raise GoogleWalletNotConfiguredError()

    object_id = get_object_id(profile.id)
    with GoogleWalletClient() as client:
        class_id = ensure_loyalty_class(client)
        body = build_loyalty_object(
            profile,
            class_id=class_id,
            object_id=object_id,
            image_url=hero_image_url(profile.id),
        )

        existing = client.get_object(object_id)
        if existing.status_code == 404:
            response = client.insert_object(body)
            action = 'create'
        else:
            response = client.update_object(object_id, body)
            action = 'update'

        if response.status_code not in (200, 201, 409):
            _raise_for(response, f'{action} loyalty object {object_id}')

    logger.info("Google Wallet object %s %sd for profile %s", object_id, action, profile.id)
    return {'objectId': object_id, 'saveUrl': save_url(object_id)}


def update_google_wallet_pass(profile):
    """
    Push the current balance to the customer's Google Wallet object.

    Returns:
        bool: False when Google Wallet is off, the customer has no object or
        the update failed; True when the object is current.
    """
    if not is_google_wallet_configured():
        return False

    object_id = get_object_id(profile.id)
    points = int(profile.points_balance or 0)
    try:
        with GoogleWalletClient() as client:
            response = client.get_object(object_id)
            if response.status_code == 404:
                return False
            if response.status_code != 200:
                _raise_for(response, f'read loyalty object {object_id}')

            current = response.json().get('loyaltyPoints', {}).get('balance', {})
            if int(current.get('int', current.get('string', -1))) == points:
                return True

            body = build_loyalty_object(
                profile,
                object_id=object_id,
                image_url=hero_image_url(profile.id),
            )
            response = client.update_object(object_id, body)
            if response.status_code != 200:
                _raise_for(response, f'update loyalty object {object_id}')
    except (
        httpx.HTTPError,
        jwt.PyJWTError,
        GoogleWalletAPIError,
        GoogleWalletNotConfiguredError,
        KeyError,
        ValueError,
    ):
        logger.exception("Failed to update Google Wallet pass for profile %s", profile.id)
        return False

    logger.info("Google Wallet pass for profile %s updated to %d points", profile.id, points)
    return True


def has_google_wallet_pass(profile_id):
    if not is_google_wallet_configured():
        return False
    try:
        with GoogleWalletClient() as client:
            return client.get_object(get_object_id(profile_id)).status_code == 200
    except (httpx.HTTPError, GoogleWalletAPIError):
        logger.exception("Could not check Google Wallet pass for profile %s", profile_id)
        return False
