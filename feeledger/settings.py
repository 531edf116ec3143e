# feeledger/settings.py

import os
import sys
import dj_database_url
from pathlib import Path
from django.core.management.utils import get_random_secret_key

from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

# Django apps live under apps/ and are imported as top-level packages
sys.path.insert(0, str(BASE_DIR / 'apps'))

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', get_random_secret_key())

DEBUG = os.environ.get('DJANGO_DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', '127.0.0.1,localhost').split(',')

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',

    'core',
    'utils',
    'accounts',
    'academics',
    'students',
    'fees',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'utils.middleware.RequestContextMiddleware',
]

ROOT_URLCONF = 'feeledger.urls'

WSGI_APPLICATION = 'feeledger.wsgi.application'


local_sqlite_url = 'sqlite:///' + os.path.join(BASE_DIR, 'db.sqlite3')
database_url = os.environ.get('DATABASE_URL', local_sqlite_url)

DATABASES = {
    'default': dj_database_url.config(
        default=database_url,
        conn_max_age=600,
        ssl_require=os.environ.get('DATABASE_SSL', 'False').lower() == 'true'
    )
}

SESSION_ENGINE = 'django.contrib.sessions.backends.db'
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'False').lower() == 'true'

LANGUAGE_CODE = 'en-us'

TIME_ZONE = os.environ.get('SCHOOL_TIME_ZONE', 'Africa/Blantyre')

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'feeledger',
    }
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
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
        'level': 'INFO' if DEBUG else 'WARNING',
    },
    'loggers': {
        'fees': {
            'handlers': ['console'],
            'level': os.environ.get('FEE_LEDGER_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}


# =============================================================================
# FEE LEDGER
# =============================================================================

FEE_LEDGER = {
    'CURRENCY_LABEL': os.environ.get('FEE_LEDGER_CURRENCY_LABEL', 'MK'),
    'RECENT_RECEIPTS_LIMIT': int(os.environ.get('FEE_LEDGER_RECENT_RECEIPTS_LIMIT', '5')),
    'FEE_STRUCTURE_CACHE_TIMEOUT': int(os.environ.get('FEE_LEDGER_CACHE_TIMEOUT', '3600')),
    'ATOMIC_WRITES': os.environ.get('FEE_LEDGER_ATOMIC_WRITES', 'True').lower() == 'true',
}

SCHOOL_REPORTS = {
    'ENABLED': os.environ.get('SCHOOL_REPORTS_ENABLED', 'True').lower() == 'true',
    'UI': os.environ.get('SCHOOL_REPORTS_UI', 'default'),
}

if not DEBUG:
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
    CSRF_COOKIE_SECURE = True
