# config/settings/test.py
"""
Settings used by the test suite.
Every external collaborator is replaced by its in-memory adapter.
"""
from .base import *

DEBUG = False
SECRET_KEY = 'test-secret-key'
ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

DOCUMENT_STORE_BACKEND = 'apps.core.store.InMemoryDocumentStore'
OBJECT_STORAGE_BACKEND = 'apps.core.storage.InMemoryObjectStorage'
IDENTITY_PROVIDER_BACKEND = 'apps.users.identity.InMemoryIdentityProvider'

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'tests',
    }
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'WARNING',
    },
}
