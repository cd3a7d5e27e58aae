# apps/core/firebase.py
import logging
import threading

import firebase_admin
from firebase_admin import credentials
from django.conf import settings

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def get_firebase_app():
    """Initialize the Firebase Admin SDK once and return the default app"""
    with _init_lock:
        if not firebase_admin._apps:
            if settings.FIREBASE_CREDENTIALS_PATH:
                cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
            else:
                cred = credentials.ApplicationDefault()
            options = {}
            if settings.FIREBASE_STORAGE_BUCKET:
                options['storageBucket'] = settings.FIREBASE_STORAGE_BUCKET
            firebase_admin.initialize_app(cred, options)
            logger.info("Firebase Admin SDK initialized")
        return firebase_admin.get_app()
