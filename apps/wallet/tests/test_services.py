import hashlib
import json
import os
import zipfile
from io import BytesIO
from unittest.mock import MagicMock, patch

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.serialization import pkcs7
from PIL import Image
from apps.loyalty.rewards import MESSAGE_NONE
from apps.wallet.models import PassRegistration
from apps.wallet.services import (
    PassCertificatesNotConfiguredError,
    GoogleWalletAPIError,
    build_loyalty_pass_json,
    build_gift_card_pass_json,
    generate_loyalty_pkpass,
    generate_gift_card_pkpass,
    generate_auth_token,
    validate_auth_token,
    get_base_url,
    is_public_url,
    register_device,
    unregister_device,
    serials_for_device,
    notify_pass_update,
    sync_loyalty_pass,
    sync_gift_card_pass,
)
from apps.wallet.services import apns, google_wallet
from apps.wallet.services.apple_passes import member_name
from apps.wallet.services.images import render_loyalty_background, render_gift_card_background
from .conftest import ISSUER_ID, SERVICE_ACCOUNT_EMAIL

LOYALTY_TYPE = 'pass.com.vigocoffee.loyalty'


def _register(serial, device='device-1', token='push-token-1', pass_type=LOYALTY_TYPE):
    registration, _ = register_device(
        device_library_identifier=device,
        pass_type_identifier=pass_type,
        serial_number=str(serial),
        push_token=token,
    )
    return registration


# =============================================================================
# Auth tokens and base URL
# =============================================================================

class TestAuthTokens:
    def test_token_is_32_lowercase_hex(self):
        token = generate_auth_token('serial-1')
        assert len(token) == 32
        assert token == token.lower()
        int(token, 16)

    def test_token_is_deterministic_per_serial(self):
        assert generate_auth_token('serial-1') == generate_auth_token('serial-1')
        assert generate_auth_token('serial-1') != generate_auth_token('serial-2')

    def test_token_depends_on_secret(self):
        assert generate_auth_token('s', secret='one') != generate_auth_token('s', secret='two')

    @pytest.mark.skipif('PASS_AUTH_SECRET' in os.environ, reason='secret set in the environment')
    def test_secret_defaults_to_secret_key(self, settings):
        assert settings.PASS_AUTH_SECRET == settings.SECRET_KEY

    def test_default_token_uses_configured_secret(self, settings):
        settings.PASS_AUTH_SECRET = 'rotated-secret'
        assert generate_auth_token('serial-1') == generate_auth_token('serial-1', secret='rotated-secret')

    def test_validate_accepts_matching_token(self):
        assert validate_auth_token(generate_auth_token('serial-1'), 'serial-1') is True

    def test_validate_rejects_other_serial(self):
        assert validate_auth_token(generate_auth_token('serial-1'), 'serial-2') is False

    @pytest.mark.parametrize('token', [None, '', 'short', 'G' * 32, 'A' * 32])
    def test_validate_rejects_malformed(self, token):
        assert validate_auth_token(token, 'serial-1') is False


class TestBaseUrl:
    def test_adds_scheme_and_strips_slash(self, settings):
        settings.APP_URL = 'coffee.example.com/'
        assert get_base_url() == 'https://coffee.example.com'

    def test_keeps_http_scheme(self, settings):
        settings.APP_URL = 'http://localhost:3000'
        assert get_base_url() == 'http://localhost:3000'

    @pytest.mark.parametrize('url', [
        'http://localhost:3000',
        'http://127.0.0.1:8000',
        'http://192.168.1.20',
        'http://10.0.0.5:8000',
        'http://shop.localhost',
    ])
    def test_local_urls_are_not_public(self, url):
        assert is_public_url(url) is False

    def test_domain_is_public(self):
        assert is_public_url('https://coffee.example.com') is True


# =============================================================================
# Apple passes
# =============================================================================

@pytest.mark.django_db
class TestLoyaltyPassJson:
    def test_core_fields(self, profile, settings):
        settings.APPLE_TEAM_ID = 'TEAM123456'
        pass_json = build_loyalty_pass_json(profile)

        assert pass_json['formatVersion'] == 1
        assert pass_json['serialNumber'] == str(profile.id)
        assert pass_json['passTypeIdentifier'] == settings.PASS_TYPE_ID
        assert pass_json['teamIdentifier'] == 'TEAM123456'
        assert pass_json['organizationName'] == 'Vigo Coffee'
        assert pass_json['description'] == 'Vigo Coffee Loyalty Card'
        assert pass_json['barcodes'][0]['message'] == str(profile.id)

    def test_store_card_fields(self, profile):
        card = build_loyalty_pass_json(profile)['storeCard']

        assert card['headerFields'][0]['value'] == '13 pts'
        assert card['secondaryFields'][0]['value'] == 'Ana Customer'
        assert card['auxiliaryFields'][0]['value'] == MESSAGE_NONE
        assert card['backFields'][0]['value'] == '25 stamps = meal, 10 stamps = coffee'

    def test_web_service_only_for_public_base_url(self, profile, settings):
        pass_json = build_loyalty_pass_json(profile)
        assert pass_json['webServiceURL'] == 'https://coffee.example.com/api/pass'
        assert pass_json['authenticationToken'] == generate_auth_token(str(profile.id))

        settings.APP_URL = 'http://localhost:3000'
        pass_json = build_loyalty_pass_json(profile)
        assert 'webServiceURL' not in pass_json
        assert 'authenticationToken' not in pass_json

    def test_member_name_falls_back(self, profile):
        profile.full_name = '  '
        assert member_name(profile) == 'customer@example.com'
        profile.email = None
        assert member_name(profile) == 'Valued Customer'


@pytest.mark.django_db
class TestGiftCardPassJson:
    def test_fields(self, gift_card):
        pass_json = build_gift_card_pass_json(gift_card)
        card = pass_json['storeCard']

        assert pass_json['description'] == 'Vigo Coffee Gift Card'
        assert pass_json['serialNumber'] == str(gift_card.serial_number)
        assert pass_json['webServiceURL'] == 'https://coffee.example.com/api/pass/giftcard'
        assert card['headerFields'][0]['value'] == '$250.00'
        assert card['secondaryFields'][0]['value'] == 'Lucia Gomez'
        assert card['auxiliaryFields'][0]['value'] == 'Active'
        assert [f['value'] for f in card['backFields']] == [
            '$250.00 MXN', '$250.00 MXN', '$0.00 MXN',
        ]

    def test_empty_card_status(self, gift_card):
        gift_card.balance_mxn = 0
        card = build_gift_card_pass_json(gift_card)['storeCard']
        assert card['auxiliaryFields'][0]['value'] == 'Balance is zero'


@pytest.mark.django_db
class TestPkpass:
    def _open(self, content):
        return zipfile.ZipFile(BytesIO(content))

    def test_bundle_contents(self, profile, pass_signing):
        archive = self._open(generate_loyalty_pkpass(profile))
        names = set(archive.namelist())

        assert {'pass.json', 'manifest.json', 'signature', 'icon.png', 'logo.png', 'strip.png'} <= names
        assert json.loads(archive.read('pass.json'))['serialNumber'] == str(profile.id)

    def test_manifest_hashes_every_file(self, profile, pass_signing):
        archive = self._open(generate_loyalty_pkpass(profile))
        manifest = json.loads(archive.read('manifest.json'))

        assert 'manifest.json' not in manifest
        assert 'signature' not in manifest
        for name, digest in manifest.items():
            assert hashlib.sha1(archive.read(name)).hexdigest() == digest

    def test_signature_embeds_wwdr_certificate(self, profile, pass_signing):
        archive = self._open(generate_loyalty_pkpass(profile))
        certificates = pkcs7.load_der_pkcs7_certificates(archive.read('signature'))
        subjects = {c.subject.rfc4514_string() for c in certificates}
        assert 'CN=Test WWDR' in subjects

    def test_gift_card_uses_loyalty_certificates_as_fallback(self, gift_card, pass_signing, settings):
        settings.GIFT_CARD_PASS_CERT_BASE64 = ''
        settings.GIFT_CARD_PASS_KEY_BASE64 = ''
        settings.GIFT_CARD_WWDR_CERT_BASE64 = ''
        archive = self._open(generate_gift_card_pkpass(gift_card))
        assert json.loads(archive.read('pass.json'))['description'] == 'Vigo Coffee Gift Card'

    def test_missing_certificates_raise(self, profile, no_pass_signing):
        with pytest.raises(PassCertificatesNotConfiguredError):
            generate_loyalty_pkpass(profile)


class TestImages:
    def test_loyalty_background_size(self, wallet_assets):
        image = Image.open(BytesIO(render_loyalty_background(13)))
        assert image.size == (390, 234)
        assert image.format == 'PNG'

    def test_gift_card_background_renders(self, wallet_assets):
        image = Image.open(BytesIO(render_gift_card_background('125.50')))
        assert image.size == (390, 234)


# =============================================================================
# Registrations and APNs
# =============================================================================

@pytest.mark.django_db
class TestRegistrations:
    def test_register_then_reregister_updates_token(self, profile):
        _, created = register_device(
            device_library_identifier='device-1',
            pass_type_identifier=LOYALTY_TYPE,
            serial_number=str(profile.id),
            push_token='old',
        )
        assert created is True

        registration, created = register_device(
            device_library_identifier='device-1',
            pass_type_identifier=LOYALTY_TYPE,
            serial_number=str(profile.id),
            push_token='new',
        )
        assert created is False
        assert registration.push_token == 'new'
        assert PassRegistration.objects.count() == 1

    def test_unregister_is_idempotent(self, profile):
        _register(profile.id)
        kwargs = {
            'device_library_identifier': 'device-1',
            'pass_type_identifier': LOYALTY_TYPE,
            'serial_number': str(profile.id),
        }
        assert unregister_device(**kwargs) == 1
        assert unregister_device(**kwargs) == 0

    def test_serials_for_device(self, profile, gift_card):
        _register(profile.id)
        _register(gift_card.serial_number, pass_type='pass.com.vigocoffee.giftcard')

        assert serials_for_device(
            device_library_identifier='device-1',
            pass_type_identifier=LOYALTY_TYPE,
        ) == [str(profile.id)]


@pytest.mark.django_db
class TestApns:
    def test_no_registrations_sends_nothing(self, profile, apns_configured):
        with patch.object(apns, 'APNsClient') as client_cls:
            assert notify_pass_update(str(profile.id)) == 0
        client_cls.assert_not_called()

    def test_unconfigured_returns_registration_count(self, profile, no_apns):
        _register(profile.id, device='device-1', token='a')
        _register(profile.id, device='device-2', token='b')

        with patch.object(apns, 'APNsClient') as client_cls:
            assert notify_pass_update(str(profile.id)) == 2
        client_cls.assert_not_called()

    def test_registrations_without_token_are_skipped(self, profile, no_apns):
        _register(profile.id, token=None)
        assert notify_pass_update(str(profile.id)) == 0

    def test_counts_delivered_and_drops_expired_tokens(self, profile, apns_configured):
        _register(profile.id, device='device-1', token='good')
        _register(profile.id, device='device-2', token='gone')

        client = MagicMock()
        client.send.side_effect = lambda token, topic: 200 if token == 'good' else 410
        with patch.object(apns, 'APNsClient') as client_cls:
            client_cls.return_value.__enter__.return_value = client
            assert notify_pass_update(str(profile.id)) == 1

        client.send.assert_any_call('good', LOYALTY_TYPE)
        assert not PassRegistration.objects.filter(push_token='gone').exists()
        assert PassRegistration.objects.filter(push_token='good').exists()

    def test_provider_token_is_cached_es256(self, apns_configured):
        first = apns.provider_token()
        assert apns.provider_token() == first

        header = jwt.get_unverified_header(first)
        assert header['alg'] == 'ES256'
        assert header['kid'] == 'TESTKEY123'
        claims = jwt.decode(first, apns_configured, algorithms=['ES256'])
        assert claims['iss'] == 'TEAM123456'

    def test_client_posts_background_push(self, apns_configured, settings):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        client = apns.APNsClient()
        client._http = httpx.Client(transport=httpx.MockTransport(handler))
        with client:
            assert client.send('abc123', LOYALTY_TYPE) == 200

        request = requests[0]
        assert request.url.path == '/3/device/abc123'
        assert request.headers['apns-topic'] == LOYALTY_TYPE
        assert request.headers['apns-push-type'] == 'background'
        assert request.headers['authorization'].startswith('bearer ')
        assert request.content == b'{}'


# =============================================================================
# Google Wallet
# =============================================================================

def _google_client(**responses):
    client = MagicMock()
    for method, response in responses.items():
        getattr(client, method).return_value = response
    return client


class TestGoogleConfig:
    def test_class_suffix_strips_issuer_prefix(self, settings):
        settings.GOOGLE_WALLET_ISSUER_ID = ISSUER_ID
        settings.GOOGLE_WALLET_CLASS_ID = f'{ISSUER_ID}.vigo loyalty!'
        assert google_wallet.get_class_suffix() == 'vigoloyalty'

    def test_short_suffix_falls_back_to_default(self, settings):
        settings.GOOGLE_WALLET_CLASS_ID = 'a$'
        assert google_wallet.get_class_suffix() == 'loyaltyvigocoffee'

    def test_suffix_truncated(self, settings):
        settings.GOOGLE_WALLET_CLASS_ID = 'x' * 80
        assert google_wallet.get_class_suffix() == 'x' * 50

    def test_ids(self, google_wallet_configured):
        assert google_wallet.get_class_id() == f'{ISSUER_ID}.loyaltyvigocoffee'
        digest = hashlib.sha256(b'profile-1').hexdigest()[:16]
        assert google_wallet.get_object_id('profile-1') == f'{ISSUER_ID}.{digest}'

    def test_configuration_flag(self, google_wallet_configured):
        assert google_wallet.is_google_wallet_configured() is True


class TestGoogleAccessToken:
    def test_jwt_bearer_grant_is_cached(self, google_wallet_configured):
        http = MagicMock()
        http.post.return_value = httpx.Response(200, json={'access_token': 'ya29.token', 'expires_in': 3600})

        assert google_wallet.get_access_token(http) == 'ya29.token'
        assert google_wallet.get_access_token(http) == 'ya29.token'
        assert http.post.call_count == 1

        data = http.post.call_args.kwargs['data']
        assert data['grant_type'] == 'urn:ietf:params:oauth:grant-type:jwt-bearer'
        claims = jwt.decode(
            data['assertion'],
            google_wallet_configured,
            algorithms=['RS256'],
            audience='https://oauth2.googleapis.com/token',
        )
        assert claims['iss'] == SERVICE_ACCOUNT_EMAIL
        assert claims['scope'].endswith('wallet_object.issuer')

    def test_failed_grant_raises(self, google_wallet_configured):
        http = MagicMock()
        http.post.return_value = httpx.Response(400, json={'error': 'invalid_grant'})
        with pytest.raises(GoogleWalletAPIError):
            google_wallet.get_access_token(http)


class TestGoogleClass:
    def test_missing_class_is_inserted(self, google_wallet_configured):
        client = _google_client(get_class=httpx.Response(404), insert_class=httpx.Response(200))
        assert google_wallet.ensure_loyalty_class(client) == f'{ISSUER_ID}.loyaltyvigocoffee'
        body = client.insert_class.call_args.args[0]
        assert body['programName'] == 'Vigo Coffee Loyalty Program'

    @pytest.mark.parametrize('status_code', [200, 403])
    def test_existing_class_is_not_inserted(self, google_wallet_configured, status_code):
        client = _google_client(get_class=httpx.Response(status_code))
        google_wallet.ensure_loyalty_class(client)
        client.insert_class.assert_not_called()

    def test_conflict_on_insert_counts_as_existing(self, google_wallet_configured):
        client = _google_client(get_class=httpx.Response(404), insert_class=httpx.Response(409))
        assert google_wallet.ensure_loyalty_class(client)

    def test_insert_failure_raises(self, google_wallet_configured):
        client = _google_client(get_class=httpx.Response(404), insert_class=httpx.Response(500, text='boom'))
        with pytest.raises(GoogleWalletAPIError):
            google_wallet.ensure_loyalty_class(client)


@pytest.mark.django_db
class TestGoogleObject:
    def test_loyalty_object(self, profile, google_wallet_configured):
        obj = google_wallet.build_loyalty_object(profile, image_url='https://coffee.example.com/bg.png')
        serial = str(profile.id)

        assert obj['state'] == 'ACTIVE'
        assert obj['accountId'] == serial
        assert obj['loyaltyPoints'] == {'balance': {'int': 13}, 'label': 'Points'}
        assert obj['barcode']['value'] == serial
        assert obj['barcode']['alternateText'] == f'{serial[:8]}...'
        assert [m['id'] for m in obj['textModulesData']] == ['member', 'reward', 'rewardStructure']
        assert obj['heroImage']['sourceUri']['uri'] == 'https://coffee.example.com/bg.png'

    def test_hero_image_only_for_public_base_url(self, profile, settings):
        assert google_wallet.hero_image_url(profile.id).startswith(
            f'https://coffee.example.com/api/google-wallet/background/{profile.id}/'
        )
        settings.APP_URL = 'http://localhost:3000'
        assert google_wallet.hero_image_url(profile.id) is None

    def test_save_jwt(self, google_wallet_configured, settings):
        token = google_wallet.create_save_jwt('issuer.object')
        claims = jwt.decode(token, google_wallet_configured, algorithms=['RS256'], audience='google')

        assert claims['iss'] == SERVICE_ACCOUNT_EMAIL
        assert claims['typ'] == 'savetowallet'
        assert claims['exp'] - claims['iat'] == 3600
        assert claims['origins'] == ['https://coffee.example.com']
        assert claims['payload'] == {'loyaltyObjects': [{'id': 'issuer.object'}]}

    def test_save_url(self, google_wallet_configured):
        assert google_wallet.save_url('issuer.object').startswith('https://pay.google.com/gp/v/save/')


@pytest.mark.django_db
class TestGoogleUpdater:
    def _patched(self, client):
        client_cls = MagicMock()
        client_cls.return_value.__enter__.return_value = client
        return patch.object(google_wallet, 'GoogleWalletClient', client_cls)

    def test_not_configured(self, profile, no_google_wallet):
        assert google_wallet.update_google_wallet_pass(profile) is False

    def test_no_object_yet(self, profile, google_wallet_configured):
        client = _google_client(get_object=httpx.Response(404))
        with self._patched(client):
            assert google_wallet.update_google_wallet_pass(profile) is False
        client.update_object.assert_not_called()

    def test_unchanged_points_skip_update(self, profile, google_wallet_configured):
        client = _google_client(get_object=httpx.Response(
            200, json={'loyaltyPoints': {'balance': {'int': 13}}},
        ))
        with self._patched(client):
            assert google_wallet.update_google_wallet_pass(profile) is True
        client.update_object.assert_not_called()

    def test_changed_points_are_pushed(self, profile, google_wallet_configured):
        client = _google_client(
            get_object=httpx.Response(200, json={'loyaltyPoints': {'balance': {'int': 12}}}),
            update_object=httpx.Response(200),
        )
        with self._patched(client):
            assert google_wallet.update_google_wallet_pass(profile) is True

        object_id, body = client.update_object.call_args.args
        assert object_id == google_wallet.get_object_id(profile.id)
        assert body['loyaltyPoints']['balance'] == {'int': 13}

    def test_failed_update_returns_false(self, profile, google_wallet_configured):
        client = _google_client(
            get_object=httpx.Response(200, json={'loyaltyPoints': {'balance': {'int': 1}}}),
            update_object=httpx.Response(500, text='backend error'),
        )
        with self._patched(client):
            assert google_wallet.update_google_wallet_pass(profile) is False

    def test_create_or_update_inserts_new_object(self, profile, google_wallet_configured):
        client = _google_client(
            get_class=httpx.Response(200),
            get_object=httpx.Response(404),
            insert_object=httpx.Response(200),
        )
        with self._patched(client):
            result = google_wallet.create_or_update_pass(profile)

        assert result['objectId'] == google_wallet.get_object_id(profile.id)
        assert result['saveUrl'].startswith('https://pay.google.com/gp/v/save/')
        client.insert_object.assert_called_once()


# =============================================================================
# Post-commit sync
# =============================================================================

@pytest.mark.django_db
class TestSync:
    def test_loyalty_sync_updates_both_wallets(self, profile):
        with patch('apps.wallet.services.notifications.notify_pass_update') as push, \
                patch('apps.wallet.services.notifications.update_google_wallet_pass') as google:
            sync_loyalty_pass(profile.id)

        push.assert_called_once_with(str(profile.id))
        assert google.call_args.args[0] == profile

    def test_reward_uses_reward_push(self, profile):
        with patch('apps.wallet.services.notifications.notify_reward_earned') as reward, \
                patch('apps.wallet.services.notifications.update_google_wallet_pass'):
            sync_loyalty_pass(profile.id, reward_type='coffee')

        reward.assert_called_once_with(str(profile.id), 'coffee')

    def test_push_failure_does_not_block_google(self, profile):
        with patch('apps.wallet.services.notifications.notify_pass_update',
                   side_effect=httpx.ConnectError('down')), \
                patch('apps.wallet.services.notifications.update_google_wallet_pass') as google:
            sync_loyalty_pass(profile.id)

        google.assert_called_once()

    def test_gift_card_sync_uses_gift_card_pass_type(self, gift_card, settings):
        with patch('apps.wallet.services.notifications.notify_pass_update') as push:
            sync_gift_card_pass(gift_card.serial_number)

        push.assert_called_once_with(str(gift_card.serial_number), settings.GIFT_CARD_PASS_TYPE_ID)
