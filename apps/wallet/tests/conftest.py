import base64
import json
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.employees.models import Employee
from apps.giftcards.services import GiftCardService
from apps.loyalty.models import Profile
from apps.wallet.services.apns import reset_provider_token
from apps.wallet.services.google_wallet import reset_access_token

ISSUER_ID = '3388000000012345678'
SERVICE_ACCOUNT_EMAIL = 'wallet@vigo-coffee.iam.gserviceaccount.com'


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def _self_signed(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(dt_timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return certificate.public_bytes(serialization.Encoding.PEM), key_pem


@pytest.fixture(autouse=True)
def _clear_token_caches():
    reset_provider_token()
    reset_access_token()
    yield
    reset_provider_token()
    reset_access_token()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer_user(db):
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Ana Customer',
    )


@pytest.fixture
def profile(customer_user):
    return Profile.objects.create(
        user=customer_user,
        full_name='Ana Customer',
        email='customer@example.com',
        points_balance=13,
        total_purchases=13,
    )


@pytest.fixture
def customer_client(customer_user):
    return _client_for(customer_user)


@pytest.fixture
def employee(db):
    user = User.objects.create_user(email='barista@example.com', password='TestPass123!')
    return Employee.objects.create(user=user, email=user.email, username='barista')


@pytest.fixture
def gift_card(employee):
    return GiftCardService.issue(
        recipient_name='Lucia Gomez',
        initial_balance=Decimal('250.00'),
        created_by=employee,
    )


@pytest.fixture
def wallet_assets(settings, tmp_path):
    """Empty assets directory so placeholder artwork is used."""
    settings.WALLET_ASSETS_DIR = str(tmp_path)
    return tmp_path


@pytest.fixture
def pass_signing(settings, wallet_assets):
    """Self-signed pass and WWDR certificates."""
    cert_pem, key_pem = _self_signed('Pass Type ID: pass.com.vigocoffee.loyalty')
    wwdr_pem, _ = _self_signed('Test WWDR')

    settings.APPLE_TEAM_ID = 'TEAM123456'
    settings.APPLE_PASS_CERT_BASE64 = base64.b64encode(cert_pem).decode()
    settings.APPLE_PASS_KEY_BASE64 = base64.b64encode(key_pem).decode()
    settings.APPLE_PASS_PASSWORD = ''
    settings.APPLE_WWDR_CERT_BASE64 = base64.b64encode(wwdr_pem).decode()
    return {'certificate': cert_pem, 'wwdr': wwdr_pem}


@pytest.fixture
def no_pass_signing(settings, wallet_assets):
    settings.APPLE_PASS_CERT_BASE64 = ''
    settings.APPLE_PASS_KEY_BASE64 = ''
    settings.APPLE_WWDR_CERT_BASE64 = ''
    settings.GIFT_CARD_PASS_CERT_BASE64 = ''
    settings.GIFT_CARD_PASS_KEY_BASE64 = ''
    settings.GIFT_CARD_WWDR_CERT_BASE64 = ''


@pytest.fixture(scope='session')
def service_account_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def google_wallet_configured(settings, service_account_key):
    """Google Wallet configured with a throwaway service account."""
    key_pem = service_account_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    account = {
        'type': 'service_account',
        'client_email': SERVICE_ACCOUNT_EMAIL,
        'private_key': key_pem,
        'token_uri': 'https://oauth2.googleapis.com/token',
    }
    settings.GOOGLE_WALLET_ISSUER_ID = ISSUER_ID
    settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = SERVICE_ACCOUNT_EMAIL
    settings.GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64 = base64.b64encode(json.dumps(account).encode()).decode()
    settings.GOOGLE_WALLET_CLASS_ID = 'loyaltyvigocoffee'
    return service_account_key.public_key()


@pytest.fixture
def no_google_wallet(settings):
    settings.GOOGLE_WALLET_ISSUER_ID = ''
    settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = ''
    settings.GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64 = ''


@pytest.fixture
def no_apns(settings):
    settings.APNS_KEY_ID = ''
    settings.APNS_TEAM_ID = ''
    settings.APNS_KEY_PATH = ''


@pytest.fixture
def apns_configured(settings, tmp_path):
    key = ec.generate_private_key(ec.SECP256R1())
    key_path = tmp_path / 'AuthKey_TESTKEY123.p8'
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    settings.APNS_KEY_ID = 'TESTKEY123'
    settings.APNS_TEAM_ID = 'TEAM123456'
    settings.APNS_KEY_PATH = str(key_path)
    return key.public_key()
