# apps/core/storage.py
"""
Object storage adapters for profile pictures.
Paths are stored on the owning document; URLs are derived when rendering.
"""
import logging
import threading
from datetime import timedelta

from django.conf import settings
from firebase_admin import storage
from google.api_core import exceptions as google_exceptions

from apps.core.exceptions import StorageOperationError
from apps.core.firebase import get_firebase_app

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Interface implemented by object storage adapters"""

    def upload(self, path, content, content_type=None):
        """Store `content` (bytes) under `path` and return the path"""
        raise NotImplementedError

    def delete(self, path):
        """Remove the object at `path`. Removing a missing object succeeds."""
        raise NotImplementedError

    def url(self, path):
        """Return a URL the browser can fetch the object from"""
        raise NotImplementedError


class FirebaseObjectStorage(ObjectStorage):
    """Firebase Storage bucket configured by FIREBASE_STORAGE_BUCKET"""

    def __init__(self, bucket=None):
        self._bucket = bucket or storage.bucket(app=get_firebase_app())

    def upload(self, path, content, content_type=None):
        try:
            self._bucket.blob(path).upload_from_string(content, content_type=content_type)
        except google_exceptions.GoogleAPICallError as exc:
            logger.error(f"Upload of {path} failed: {exc}")
            raise StorageOperationError() from exc
        logger.info(f"Uploaded {path}")
        return path

    def delete(self, path):
        try:
            self._bucket.blob(path).delete()
        except google_exceptions.NotFound:
            logger.info(f"{path} already removed")
        except google_exceptions.GoogleAPICallError as exc:
            logger.error(f"Delete of {path} failed: {exc}")
            raise StorageOperationError() from exc

    def url(self, path):
        expiration = timedelta(minutes=settings.STORAGE_URL_EXPIRATION_MINUTES)
        return self._bucket.blob(path).generate_signed_url(expiration=expiration, version='v4')


class InMemoryObjectStorage(ObjectStorage):
    """Keeps objects in a dict; URLs use the memory:// scheme"""

    def __init__(self):
        self._lock = threading.Lock()
        self.objects = {}

    def upload(self, path, content, content_type=None):
        with self._lock:
            self.objects[path] = (bytes(content), content_type)
        return path

    def delete(self, path):
        with self._lock:
            self.objects.pop(path, None)

    def url(self, path):
        return f'memory://{path}'
