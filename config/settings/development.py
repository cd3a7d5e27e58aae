# config/settings/development.py
"""
Development-specific settings.
Without Firebase credentials every external collaborator runs in memory.
"""
from .base import *

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1', '*']

# Use BrowsableAPI renderer in development
REST_FRAMEWORK['DEFAULT_RENDERER_CLASSES'] = [
    'rest_framework.renderers.JSONRenderer',
    'rest_framework.renderers.BrowsableAPIRenderer',
]

if not FIREBASE_CREDENTIALS_PATH:
    DOCUMENT_STORE_BACKEND = env('DOCUMENT_STORE_BACKEND', default='apps.core.store.InMemoryDocumentStore')
    OBJECT_STORAGE_BACKEND = env('OBJECT_STORAGE_BACKEND', default='apps.core.storage.InMemoryObjectStorage')
    IDENTITY_PROVIDER_BACKEND = env(
        'IDENTITY_PROVIDER_BACKEND', default='apps.users.identity.InMemoryIdentityProvider'
    )

# Print notification mails instead of relaying them
EMAIL_BACKEND = env('EMAIL_BACKEND', default='django.core.mail.backends.console.EmailBackend')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}
