from django.urls import path
from . import views

app_name = 'wallet'


def passkit_routes(prefix, kind):
    """PassKit web service endpoints; Wallet calls them without trailing slashes."""
    extra = {'kind': kind}
    return [
        path(
            f'{prefix}devices/<str:device_library_identifier>/registrations/'
            f'<str:pass_type_identifier>/<str:serial_number>',
            views.device_registration, extra, name=f'{kind}-registration',
        ),
        path(
            f'{prefix}devices/<str:device_library_identifier>/registrations/<str:pass_type_identifier>',
            views.device_serial_numbers, extra, name=f'{kind}-serials',
        ),
        path(
            f'{prefix}passes/<str:pass_type_identifier>/<str:serial_number>',
            views.latest_pass, extra, name=f'{kind}-latest-pass',
        ),
        path(f'{prefix}log', views.device_log, extra, name=f'{kind}-log'),
    ]


urlpatterns = [
    # Pass downloads
    path('wallet/', views.loyalty_pass, name='loyalty-pass'),
    path('wallet/gift-card/', views.gift_card_pass, name='gift-card-pass'),

    # Google Wallet
    path('google-wallet/create/', views.google_wallet_create, name='google-create'),
    path(
        'google-wallet/background/<uuid:profile_id>/',
        views.google_wallet_background,
        name='google-background',
    ),

    # PassKit web service
    *passkit_routes('pass/v1/', 'loyalty'),
    *passkit_routes('pass/giftcard/v1/', 'giftcard'),
]
