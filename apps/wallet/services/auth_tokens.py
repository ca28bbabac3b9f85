"""
PassKit authentication tokens.

Every pass carries ``authenticationToken`` and the device echoes it back as
``Authorization: ApplePass <token>``. Tokens are derived from the serial
number with HMAC-SHA256, so nothing needs to be stored to validate them.
"""

import hashlib
import hmac
import re

from django.conf import settings

TOKEN_LENGTH = 32
TOKEN_PATTERN = re.compile(r'^[a-f0-9]{32}$')
AUTH_SCHEME = 'ApplePass'


def generate_auth_token(serial_number, secret=None):
    """32 lowercase hex characters derived from ``serial_number``."""
    key = (secret or settings.PASS_AUTH_SECRET).encode()
    digest = hmac.new(key, str(serial_number).encode(), hashlib.sha256).hexdigest()
    return digest[:TOKEN_LENGTH]


def validate_auth_token(token, serial_number, secret=None):
    if not token or not TOKEN_PATTERN.match(token):
        return False
    expected = generate_auth_token(serial_number, secret=secret)
    return hmac.compare_digest(token, expected)


def token_from_header(header_value):
    """Extract the token from an ``ApplePass <token>`` header, or None."""
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(' ')
    if scheme != AUTH_SCHEME or not token.strip():
        return None
    return token.strip()


def is_authorized(request, serial_number):
    token = token_from_header(request.headers.get('Authorization'))
    return validate_auth_token(token, serial_number)
