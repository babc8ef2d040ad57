"""
Django settings for the Univend project.
Values that differ per deployment are read from the environment.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'univend-dev-insecure-key')
DEBUG = os.getenv('DJANGO_DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]


# ==========================================
# APPLICATIONS
# ==========================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'apps.users',
    'apps.marketplace',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'Univend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
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


# ==========================================
# DATABASE
# ==========================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('UNIVEND_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
        'OPTIONS': {
            # Writers take the database lock at BEGIN and queue behind each
            # other for up to `timeout` seconds instead of failing mid-unit
            'transaction_mode': 'IMMEDIATE',
            'timeout': int(os.getenv('UNIVEND_DB_TIMEOUT', 20)),
        },
        'TEST': {
            # File-backed so threads in the test suite share one database
            'NAME': os.getenv('UNIVEND_TEST_DB_PATH', str(BASE_DIR / 'test_univend.sqlite3')),
        },
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'users.CustomUser'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
]


# ==========================================
# LOCALISATION & STATIC
# ==========================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Africa/Lagos'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ==========================================
# EMAIL
# ==========================================

EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', 587))
EMAIL_USE_TLS = True
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'Univend <no-reply@univend.ng>')
UNIVEND_EMAIL_SUBJECT_PREFIX = os.getenv('UNIVEND_EMAIL_SUBJECT_PREFIX', '[Univend] ')

SITE_URL = os.getenv('SITE_URL', 'http://localhost:8000')
ADMIN_EMAILS = [e for e in os.getenv('ADMIN_EMAILS', 'admin@univend.ng').split(',') if e]


# ==========================================
# MARKETPLACE
# ==========================================

# Flat fee charged on delivery orders and paid out to the rider
UNIVEND_DELIVERY_FEE = int(os.getenv('UNIVEND_DELIVERY_FEE', 500))

# Balance given to a wallet the first time it is touched
UNIVEND_WALLET_STARTING_BALANCE = int(os.getenv('UNIVEND_WALLET_STARTING_BALANCE', 50000))

# Attempts per atomic unit when a conditional write loses a race
UNIVEND_TRANSITION_MAX_ATTEMPTS = int(os.getenv('UNIVEND_TRANSITION_MAX_ATTEMPTS', 3))

# Base pause in seconds before re-running a unit; doubles per attempt, jittered
UNIVEND_TRANSITION_BACKOFF = float(os.getenv('UNIVEND_TRANSITION_BACKOFF', 0.05))


# ==========================================
# LOGGING
# ==========================================

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
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': os.getenv('UNIVEND_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'core': {
            'handlers': ['console'],
            'level': os.getenv('UNIVEND_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
