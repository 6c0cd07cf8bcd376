import json
import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'epos-dev-key-replace-before-deployment')

DEBUG = os.environ.get('DJANGO_DEBUG', 'true').lower() == 'true'

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_spectacular',
    'epos',
    'catalog',
    'businessday',
    'tables',
    'orders',
    'billing',
    'payment',
    'reports',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

ROOT_URLCONF = 'epos.urls'
WSGI_APPLICATION = 'epos.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DJANGO_DB_PATH', BASE_DIR / 'db.sqlite3'),
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'epos.authentication.APIKeyAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'epos.permissions.APIKeyPermission',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'epos.exceptions.pos_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'EPOS Restaurant API',
    'DESCRIPTION': 'Business day, table session, order, billing and payment endpoints',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

# Redis holds the QR idempotency and rate limit keys
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DB = os.environ.get('REDIS_DB', '0')

# Point of sale rules
POS_TAX_RATE = Decimal(os.environ.get('POS_TAX_RATE', '0.14'))
POS_DISCOUNT_CEILINGS = json.loads(
    os.environ.get('POS_DISCOUNT_CEILINGS', '{"cashier": 15, "owner": 30}')
)
POS_DEFAULT_DELIVERY_FEE = Decimal(os.environ.get('POS_DEFAULT_DELIVERY_FEE', '5.00'))
POS_POLL_INTERVAL_SECONDS = int(os.environ.get('POS_POLL_INTERVAL_SECONDS', '10'))

ORDER_MAX_ITEMS = int(os.environ.get('ORDER_MAX_ITEMS', '20'))
ORDER_MAX_QUANTITY = int(os.environ.get('ORDER_MAX_QUANTITY', '20'))

QR_RATE_LIMIT = int(os.environ.get('QR_RATE_LIMIT', '3'))
QR_RATE_WINDOW_SECONDS = int(os.environ.get('QR_RATE_WINDOW_SECONDS', '60'))
QR_REQUEST_ID_TTL_SECONDS = int(os.environ.get('QR_REQUEST_ID_TTL_SECONDS', '300'))

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

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
        app: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
        for app in ('epos', 'catalog', 'businessday', 'tables', 'orders', 'billing', 'payment', 'reports')
    },
}
