# config/settings/base.py
"""
Base Django settings for the project.
Common settings shared across all environments.
"""
import os
import environ
from pathlib import Path

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Environment variables
env = environ.Env(DEBUG=(bool, False))
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

# Security
SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me')
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=[])

# Application definition
INSTALLED_APPS = [
    # Django apps
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',

    # Third-party apps
    'rest_framework',
    'drf_yasg',

    # Local apps (use apps.appname for clarity)
    'apps.core',
    'apps.users',
    'apps.clients',
    'apps.catalog',
    'apps.locations',
    'apps.entries',
    'apps.forms',
    'apps.exports',
    'apps.dashboard',
    'apps.notifications',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
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
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'

# Django itself only needs a database for auth/contenttypes bookkeeping;
# business data lives in the document store below.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework configuration
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.users.authentication.FirebaseAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_PAGINATION_CLASS': 'apps.core.pagination.StaticPagination',
    'PAGE_SIZE': 10,
    'DEFAULT_FILTER_BACKENDS': [],
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'UNAUTHENTICATED_USER': None,
}

# Swagger settings
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {
            'type': 'apiKey',
            'name': 'Authorization',
            'in': 'header',
            'description': "Firebase ID token. Example: 'Authorization: Bearer {token}'",
        }
    },
    'USE_SESSION_AUTH': False,
    'LOGIN_URL': None,
    'LOGOUT_URL': None,
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'unique-snowflake',
    }
}

# Firebase (document store, identity provider, object storage)
FIREBASE_CREDENTIALS_PATH = env('FIREBASE_CREDENTIALS_PATH', default='')
FIREBASE_STORAGE_BUCKET = env('FIREBASE_STORAGE_BUCKET', default='')
FIREBASE_WEB_API_KEY = env('FIREBASE_WEB_API_KEY', default='')
FIREBASE_SIGN_IN_URL = 'https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword'

DOCUMENT_STORE_BACKEND = env('DOCUMENT_STORE_BACKEND', default='apps.core.store.FirestoreDocumentStore')
OBJECT_STORAGE_BACKEND = env('OBJECT_STORAGE_BACKEND', default='apps.core.storage.FirebaseObjectStorage')
IDENTITY_PROVIDER_BACKEND = env(
    'IDENTITY_PROVIDER_BACKEND', default='apps.users.identity.FirebaseIdentityProvider'
)
STORE_TRANSACTION_MAX_ATTEMPTS = env.int('STORE_TRANSACTION_MAX_ATTEMPTS', default=5)
STORAGE_URL_EXPIRATION_MINUTES = env.int('STORAGE_URL_EXPIRATION_MINUTES', default=60)

# Client codes: PI0001, PI0002, ...
CLIENT_CODE_PREFIX = 'PI'
CLIENT_CODE_WIDTH = 4

# Multi-step form sessions (seconds)
FORM_SESSION_TIMEOUT = env.int('FORM_SESSION_TIMEOUT', default=60 * 60)

# Letterhead printed on every PDF export
EXPORT_LETTERHEAD = {
    'title': 'Prajapati',
    'subtitle': 'Wealth Management',
    'email': 'Email ID: prajapatiinvest@gmail.com',
    'contact': '(O): 93200008698 / 9324660329 / 8080892517',
}

# Notification mail: the relay credential is configured here, never per request
EMAIL_BACKEND = env('EMAIL_BACKEND', default='django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = env('EMAIL_HOST', default='smtp.gmail.com')
EMAIL_PORT = env.int('EMAIL_PORT', default=587)
EMAIL_HOST_USER = env('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = env('EMAIL_HOST_PASSWORD', default='')
EMAIL_USE_TLS = env.bool('EMAIL_USE_TLS', default=True)
NOTIFICATION_EMAIL_FROM = env('NOTIFICATION_EMAIL_FROM', default='prajapatiinvest@gmail.com')
NOTIFICATION_EMAIL_SUBJECT = 'Notification Reminder'
