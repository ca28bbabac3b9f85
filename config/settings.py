"""
Django settings for Vigo Coffee Loyalty project.

For more information on this file, see
https://docs.djangoproject.com/en/4.2/topics/settings/
"""

from pathlib import Path
from datetime import timedelta
from decouple import config, Csv
import dj_database_url
import sys


# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# =============================================================================
# CORE SETTINGS
# =============================================================================

SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-me-in-production')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())

# Render.com sets this automatically
RENDER_EXTERNAL_HOSTNAME = config('RENDER_EXTERNAL_HOSTNAME', default=None)
if RENDER_EXTERNAL_HOSTNAME:
    ALLOWED_HOSTS.append(RENDER_EXTERNAL_HOSTNAME)


# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Local apps
    'apps.accounts',
    'apps.employees',
    'apps.loyalty',
    'apps.giftcards',
    'apps.wallet',
    'apps.analytics',

    # Third-party
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'drf_spectacular',
]

AUTH_USER_MODEL = 'accounts.User'

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',  # Serve static files in production
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# =============================================================================
# DATABASE
# =============================================================================

# Postgres in production via DATABASE_URL, SQLite otherwise
DATABASES = {
    'default': dj_database_url.config(
        default=config('DATABASE_URL', default=f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
        conn_max_age=600,
    )
}


# =============================================================================
# PASSWORD VALIDATION
# =============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {'min_length': 6},
    },
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True


# =============================================================================
# STATIC FILES
# =============================================================================

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# WhiteNoise for production static file serving
STATICFILES_STORAGE = 'whitenoise.storage.CompressedManifestStaticFilesStorage'


# =============================================================================
# DEFAULT PRIMARY KEY
# =============================================================================

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# DJANGO REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'config.views.api_exception_handler',
}


# =============================================================================
# DRF SPECTACULAR (API DOCS)
# =============================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'Vigo Coffee Loyalty API',
    'DESCRIPTION': 'Loyalty points, gift cards, wallet passes and the employee dashboard API.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': r'/api/',
}


# =============================================================================
# JWT SETTINGS
# =============================================================================

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=60),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'AUTH_HEADER_TYPES': ('Bearer',),
}


# =============================================================================
# CORS SETTINGS
# =============================================================================

if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True
else:
    CORS_ALLOWED_ORIGINS = config(
        'CORS_ALLOWED_ORIGINS',
        default='',
        cast=Csv()
    )
    # Allow same-origin requests
    CORS_ALLOW_CREDENTIALS = True


# =============================================================================
# SECURITY SETTINGS (Production)
# =============================================================================

if not DEBUG:
    # HTTPS settings
    SECURE_SSL_REDIRECT = config('SECURE_SSL_REDIRECT', default=True, cast=bool)
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

    # Cookie settings
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

    # HSTS
    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

# CSRF trusted origins for production
CSRF_TRUSTED_ORIGINS = config(
    'CSRF_TRUSTED_ORIGINS',
    default='',
    cast=Csv()
)
if RENDER_EXTERNAL_HOSTNAME:
    CSRF_TRUSTED_ORIGINS.append(f'https://{RENDER_EXTERNAL_HOSTNAME}')


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = config('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}


# =============================================================================
# EMAIL
# =============================================================================

EMAIL_BACKEND = config(
    'EMAIL_BACKEND',
    default='django.core.mail.backends.console.EmailBackend',
)
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_TIMEOUT = config('EMAIL_TIMEOUT', default=10, cast=int)
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='Vigo Coffee <no-reply@vigocoffee.com>')


# =============================================================================
# LOYALTY PROGRAM
# =============================================================================

# Public base URL used for share links, invite links and wallet web services
APP_URL = config('APP_URL', default='http://localhost:3000')

EMPLOYEE_INVITATION_TTL_DAYS = config('EMPLOYEE_INVITATION_TTL_DAYS', default=7, cast=int)


# =============================================================================
# APPLE WALLET
# =============================================================================

PASS_TYPE_ID = config('PASS_TYPE_ID', default='pass.com.vigocoffee.loyalty')
GIFT_CARD_PASS_TYPE_ID = config('GIFT_CARD_PASS_TYPE_ID', default='pass.com.vigocoffee.giftcard')
APPLE_TEAM_ID = config('APPLE_TEAM_ID', default='')

APPLE_PASS_CERT_BASE64 = config('APPLE_PASS_CERT_BASE64', default='')
APPLE_PASS_KEY_BASE64 = config('APPLE_PASS_KEY_BASE64', default='')
APPLE_PASS_PASSWORD = config('APPLE_PASS_PASSWORD', default='')
APPLE_WWDR_CERT_BASE64 = config('APPLE_WWDR_CERT_BASE64', default='')

# Gift card passes may be signed with their own pass type certificate
GIFT_CARD_PASS_CERT_BASE64 = config('GIFT_CARD_PASS_CERT_BASE64', default='')
GIFT_CARD_PASS_KEY_BASE64 = config('GIFT_CARD_PASS_KEY_BASE64', default='')
GIFT_CARD_PASS_PASSWORD = config('GIFT_CARD_PASS_PASSWORD', default='')
GIFT_CARD_WWDR_CERT_BASE64 = config('GIFT_CARD_WWDR_CERT_BASE64', default='')

# Defaults to SECRET_KEY
PASS_AUTH_SECRET = config('PASS_AUTH_SECRET', default=SECRET_KEY)

# Optional logo.png / icon.png for generated passes
WALLET_ASSETS_DIR = config('WALLET_ASSETS_DIR', default=str(BASE_DIR / 'assets'))


# =============================================================================
# APPLE PUSH NOTIFICATIONS
# =============================================================================

APNS_KEY_ID = config('APNS_KEY_ID', default='')
APNS_TEAM_ID = config('APNS_TEAM_ID', default='')
APNS_KEY_PATH = config('APNS_KEY_PATH', default='')
APNS_PRODUCTION = config('APNS_PRODUCTION', default=False, cast=bool)
APNS_TIMEOUT_SECONDS = config('APNS_TIMEOUT_SECONDS', default=10, cast=float)


# =============================================================================
# GOOGLE WALLET
# =============================================================================

GOOGLE_WALLET_ISSUER_ID = config('GOOGLE_WALLET_ISSUER_ID', default='')
GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = config('GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL', default='')
GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64 = config('GOOGLE_WALLET_SERVICE_ACCOUNT_KEY_BASE64', default='')
GOOGLE_WALLET_CLASS_ID = config('GOOGLE_WALLET_CLASS_ID', default='loyaltyvigocoffee')
GOOGLE_WALLET_TIMEOUT_SECONDS = config('GOOGLE_WALLET_TIMEOUT_SECONDS', default=15, cast=float)


# =============================================================================
# TESTING
# =============================================================================

if 'pytest' in sys.modules or 'test' in sys.argv:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'test_db.sqlite3',
        }
    }
    # Faster password hashing for tests
    PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    STATICFILES_STORAGE = 'django.contrib.staticfiles.storage.StaticFilesStorage'
    APP_URL = 'https://coffee.example.com'
    EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
