"""
Apple Wallet pass bundles.

A ``.pkpass`` file is a zip archive holding ``pass.json``, the pass images,
``manifest.json`` (SHA-1 of every file) and ``signature``: a detached
PKCS#7 signature of the manifest made with the pass type certificate, with
Apple's WWDR intermediate certificate embedded.
"""

import base64
import hashlib
import json
import logging
import zipfile
from dataclasses import dataclass
from io import BytesIO

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7
from django.conf import settings

from apps.loyalty.rewards import calculate_rewards, MESSAGE_NONE
from .auth_tokens import generate_auth_token
from .base_url import get_base_url, is_public_url
from .exceptions import PassCertificatesNotConfiguredError, PassSigningError
from .images import branding_images, render_loyalty_background, render_gift_card_background

logger = logging.getLogger(__name__)

PKPASS_CONTENT_TYPE = 'application/vnd.apple.pkpass'
ORGANIZATION_NAME = 'Vigo Coffee'
LOYALTY_DESCRIPTION = 'Vigo Coffee Loyalty Card'
GIFT_CARD_DESCRIPTION = 'Vigo Coffee Gift Card'
REWARD_STRUCTURE = '25 stamps = meal, 10 stamps = coffee'
DEFAULT_MEMBER_NAME = 'Valued Customer'

BACKGROUND_COLOR = 'rgb(0, 0, 0)'
FOREGROUND_COLOR = 'rgb(255, 255, 255)'
LABEL_COLOR = 'rgb(200, 200, 200)'


@dataclass(frozen=True)
class SigningCredentials:
    certificate: bytes
    private_key: bytes
    wwdr_certificate: bytes
    password: str = ''


def loyalty_credentials():
    return SigningCredentials(
        certificate=_decode(settings.APPLE_PASS_CERT_BASE64),
        private_key=_decode(settings.APPLE_PASS_KEY_BASE64),
        wwdr_certificate=_decode(settings.APPLE_WWDR_CERT_BASE64),
        password=settings.APPLE_PASS_PASSWORD,
    )


def gift_card_credentials():
    """Gift card certificates, falling back to the loyalty ones per field."""
    return SigningCredentials(
        certificate=_decode(settings.GIFT_CARD_PASS_CERT_BASE64 or settings.APPLE_PASS_CERT_BASE64),
        private_key=_decode(settings.GIFT_CARD_PASS_KEY_BASE64 or settings.APPLE_PASS_KEY_BASE64),
        wwdr_certificate=_decode(settings.GIFT_CARD_WWDR_CERT_BASE64 or settings.APPLE_WWDR_CERT_BASE64),
        password=settings.GIFT_CARD_PASS_PASSWORD or settings.APPLE_PASS_PASSWORD,
    )


def _decode(value):
    return base64.b64decode(value) if value else b''


def is_configured(credentials):
    return bool(
        credentials.certificate
        and credentials.private_key
        and credentials.wwdr_certificate
        and settings.APPLE_TEAM_ID
    )


# =============================================================================
# pass.json
# =============================================================================

def _field(key, label, value, **extra):
    return {'key': key, 'label': label, 'value': value, **extra}


def _base_pass(*, pass_type_id, serial_number, description, web_service_path):
    pass_json = {
        'formatVersion': 1,
        'passTypeIdentifier': pass_type_id,
        'teamIdentifier': settings.APPLE_TEAM_ID,
        'serialNumber': serial_number,
        'organizationName': ORGANIZATION_NAME,
        'description': description,
        'backgroundColor': BACKGROUND_COLOR,
        'foregroundColor': FOREGROUND_COLOR,
        'labelColor': LABEL_COLOR,
        'barcodes': [{
            'format': 'PKBarcodeFormatQR',
            'message': serial_number,
            'messageEncoding': 'iso-8859-1',
        }],
    }

    base_url = get_base_url()
    if is_public_url(base_url):
        pass_json['webServiceURL'] = f'{base_url}{web_service_path}'
        pass_json['authenticationToken'] = generate_auth_token(serial_number)
    else:
        logger.info("Base URL %s is not public; pass %s will not auto-update", base_url, serial_number)

    return pass_json


def member_name(profile):
    """Full name, else email, else a generic label. Never blank."""
    for candidate in (profile.full_name, profile.email):
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_MEMBER_NAME


def build_loyalty_pass_json(profile):
    serial_number = str(profile.id)
    points = profile.points_balance or 0
    rewards = calculate_rewards(points, profile.redeemed_rewards)

    pass_json = _base_pass(
        pass_type_id=settings.PASS_TYPE_ID,
        serial_number=serial_number,
        description=LOYALTY_DESCRIPTION,
        web_service_path='/api/pass',
    )
    pass_json['storeCard'] = {
        'headerFields': [
            _field('balance', 'BALANCE', f'{points} pts', textAlignment='PKTextAlignmentRight'),
        ],
        'secondaryFields': [
            _field('member', 'MEMBER', member_name(profile), textAlignment='PKTextAlignmentLeft'),
        ],
        'auxiliaryFields': [
            _field(
                'rewardLabel',
                rewards['reward_label'] or 'Status',
                rewards['reward_message'] or MESSAGE_NONE,
                textAlignment='PKTextAlignmentLeft',
            ),
        ],
        'backFields': [
            _field('rewardStructure', 'Reward Structure', REWARD_STRUCTURE),
        ],
    }
    return pass_json


def build_gift_card_pass_json(gift_card):
    serial_number = str(gift_card.serial_number)
    balance = gift_card.balance_mxn
    status = 'Active' if balance > 0 else 'Balance is zero'

    pass_json = _base_pass(
        pass_type_id=settings.GIFT_CARD_PASS_TYPE_ID,
        serial_number=serial_number,
        description=GIFT_CARD_DESCRIPTION,
        web_service_path='/api/pass/giftcard',
    )
    pass_json['storeCard'] = {
        'headerFields': [
            _field('balance', 'BALANCE', f'${balance:.2f}', textAlignment='PKTextAlignmentRight'),
        ],
        'secondaryFields': [
            _field('recipient', 'RECIPIENT', gift_card.recipient_name or 'Gift Card Holder'),
        ],
        'auxiliaryFields': [
            _field('status', 'STATUS', status),
        ],
        'backFields': [
            _field('initialBalance', 'Initial Balance', f'${gift_card.initial_balance_mxn:.2f} MXN'),
            _field('currentBalance', 'Current Balance', f'${balance:.2f} MXN'),
            _field('usedBalance', 'Used Balance', f'${gift_card.used_balance_mxn:.2f} MXN'),
        ],
    }
    return pass_json


# =============================================================================
# Signing and packaging
# =============================================================================

def _load_certificate(data):
    if data.lstrip().startswith(b'-----BEGIN'):
        return x509.load_pem_x509_certificate(data)
    return x509.load_der_x509_certificate(data)


def _load_private_key(data, password):
    secret = password.encode() if password else None
    if data.lstrip().startswith(b'-----BEGIN'):
        return serialization.load_pem_private_key(data, password=secret)
    return serialization.load_der_private_key(data, password=secret)


def sign_manifest(manifest, credentials):
    """Detached DER PKCS#7 signature of ``manifest``."""
    try:
        certificate = _load_certificate(credentials.certificate)
        private_key = _load_private_key(credentials.private_key, credentials.password)
        wwdr = _load_certificate(credentials.wwdr_certificate)
    except (ValueError, TypeError) as e:
        raise PassSigningError(f"Invalid pass signing material: {e}") from e

    return (
        pkcs7.PKCS7SignatureBuilder()
        .set_data(manifest)
        .add_signer(certificate, private_key, hashes.SHA256())
        .add_certificate(wwdr)
        .sign(serialization.Encoding.DER, [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary])
    )


def build_manifest(files):
    return {name: hashlib.sha1(content).hexdigest() for name, content in files.items()}


def package_pkpass(pass_json, images, credentials):
    """
    Zip ``pass.json`` and ``images`` with their manifest and signature.

    Returns:
        bytes: The ``.pkpass`` archive.
    """
    if not is_configured(credentials):
        raise PassCertificatesNotConfiguredError()

    files = {'pass.json': json.dumps(pass_json, ensure_ascii=False).encode('utf-8')}
    files.update(images)

    manifest = json.dumps(build_manifest(files), sort_keys=True).encode('utf-8')
    signature = sign_manifest(manifest, credentials)

    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
        archive.writestr('manifest.json', manifest)
        archive.writestr('signature', signature)
    return buffer.getvalue()


def generate_loyalty_pkpass(profile):
    background = render_loyalty_background(profile.points_balance)
    images = branding_images()
    images.update({
        'background.png': background,
        'background@2x.png': background,
        'strip.png': background,
        'strip@2x.png': background,
    })
    return package_pkpass(build_loyalty_pass_json(profile), images, loyalty_credentials())


def generate_gift_card_pkpass(gift_card):
    background = render_gift_card_background(gift_card.balance_mxn)
    images = branding_images()
    images.update({
        'background.png': background,
        'background@2x.png': background,
    })
    return package_pkpass(build_gift_card_pass_json(gift_card), images, gift_card_credentials())
