"""Public base URL of the deployment, used in pass web service and image links."""

import ipaddress
from urllib.parse import urlparse

from django.conf import settings

LOCAL_HOSTNAMES = {'localhost', '127.0.0.1', '0.0.0.0', '::1'}


def get_base_url():
    """``APP_URL`` with a scheme and without a trailing slash."""
    base_url = (settings.APP_URL or '').strip() or 'http://localhost:3000'
    if not base_url.startswith(('http://', 'https://')):
        base_url = f'https://{base_url}'
    return base_url.rstrip('/')


def is_public_url(url):
    """
    False for URLs Apple and Google servers cannot reach.

    Covers localhost, loopback and private or link-local address ranges.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        return False
    if hostname in LOCAL_HOSTNAMES or hostname.endswith('.localhost'):
        return False

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return True
    return not (address.is_private or address.is_loopback or address.is_link_local)
