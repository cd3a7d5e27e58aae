# apps/core/backends.py
"""
Access to the configured external collaborators.

The document store, object storage and identity provider are chosen by
dotted path in settings and instantiated once per process.
"""
import threading

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.module_loading import import_string

_BACKEND_SETTINGS = (
    'DOCUMENT_STORE_BACKEND',
    'OBJECT_STORAGE_BACKEND',
    'IDENTITY_PROVIDER_BACKEND',
)

_instances = {}
_lock = threading.Lock()


def _get_backend(setting_name):
    with _lock:
        if setting_name not in _instances:
            backend_class = import_string(getattr(settings, setting_name))
            _instances[setting_name] = backend_class()
        return _instances[setting_name]


def get_document_store():
    return _get_backend('DOCUMENT_STORE_BACKEND')


def get_object_storage():
    return _get_backend('OBJECT_STORAGE_BACKEND')


def get_identity_provider():
    return _get_backend('IDENTITY_PROVIDER_BACKEND')


def reset_backends():
    """Drop the cached instances so the next access builds fresh ones"""
    with _lock:
        _instances.clear()


@receiver(setting_changed)
def _reset_on_setting_change(sender, setting, **kwargs):
    if setting in _BACKEND_SETTINGS:
        reset_backends()
