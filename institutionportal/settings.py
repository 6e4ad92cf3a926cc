"""Django settings for the institutionportal project.

The portal keeps no domain data of its own: every blood request, stock entry,
allocation and fulfillment lives behind the remote portal API, and the
notification feed is read from the hosted PostgREST service. Values are read
from the environment (a local ``.env`` is loaded by ``manage.py``).
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'institutionportal-dev-key-change-me')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [host.strip() for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if host.strip()]


INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django.contrib.humanize',
    'blood',
    'institution',
    'fulfillment',
    'notification',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'institutionportal.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.messages.context_processors.messages',
                'institution.context_processors.institution',
            ],
        },
    },
]

WSGI_APPLICATION = 'institutionportal.wsgi.application'


# The portal has no models; sqlite only backs Django's own test harness.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# The API token lives in the signed session cookie, never in a server-side table.
SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_AGE = _env_int('PORTAL_SESSION_AGE_SECONDS', 60 * 60 * 12)
MESSAGE_STORAGE = 'django.contrib.messages.storage.session.SessionStorage'

LOGIN_URL = 'institution-login'


LANGUAGE_CODE = 'en-us'

TIME_ZONE = os.getenv('PORTAL_TIME_ZONE', 'Asia/Jakarta')

USE_I18N = True

USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# Remote portal API
PORTAL_API_BASE_URL = os.getenv('PORTAL_API_BASE_URL', 'http://localhost:4000')
PORTAL_API_TIMEOUT = _env_float('PORTAL_API_TIMEOUT', 10.0)

# Hosted PostgREST service carrying the notifications table
SUPABASE_URL = os.getenv('SUPABASE_URL', '')
SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY', '')

NOTIFICATION_FEED_LIMIT = _env_int('NOTIFICATION_FEED_LIMIT', 50)
NOTIFICATION_REFRESH_INTERVAL = _env_float('NOTIFICATION_REFRESH_INTERVAL', 30.0)
NOTIFICATION_POLL_INTERVAL = _env_float('NOTIFICATION_POLL_INTERVAL', 5.0)
NOTIFICATION_STREAM_HEARTBEAT = _env_float('NOTIFICATION_STREAM_HEARTBEAT', 15.0)

FULFILLMENT_POLL_INTERVAL = _env_float('FULFILLMENT_POLL_INTERVAL', 5.0)
FULFILLMENT_LIST_POLL_INTERVAL = _env_float('FULFILLMENT_LIST_POLL_INTERVAL', 10.0)
FULFILLMENT_DEFAULT_SEARCH_RADIUS_KM = _env_int('FULFILLMENT_DEFAULT_SEARCH_RADIUS_KM', 20)
FULFILLMENT_DEFAULT_TARGET_DONORS = _env_int('FULFILLMENT_DEFAULT_TARGET_DONORS', 50)

REQUESTS_PER_PAGE = _env_int('REQUESTS_PER_PAGE', 10)
LOW_STOCK_THRESHOLD = _env_int('LOW_STOCK_THRESHOLD', 5)


# Geocoding for the registration location picker
GEOCODER_USER_AGENT = os.getenv('GEOCODER_USER_AGENT', 'institutionportal-geocoder')
GEOCODER_TIMEOUT = _env_float('GEOCODER_TIMEOUT', 10.0)
GEOCODER_MIN_DELAY_SECONDS = _env_float('GEOCODER_MIN_DELAY_SECONDS', 1.0)
GEOCODER_COUNTRY_BIAS = os.getenv('GEOCODER_COUNTRY_BIAS', 'id')
GEOCODER_ALLOW_REMOTE = _env_bool('GEOCODER_ALLOW_REMOTE', True)
GEOCODER_STATIC_FIXTURES = {
    'monas, jakarta': (-6.175392, 106.827153),
    'jl. kramat raya no. 47, jakarta pusat': (-6.186486, 106.844879),
}


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
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
        'level': os.getenv('PORTAL_LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
    },
}
