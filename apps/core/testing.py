# apps/core/testing.py
"""
Shared API test base: fresh in-memory backends per test and ready-made
identities for every role / permission level.
"""
from django.core.cache import cache
from rest_framework.test import APIClient, APITestCase

from apps.core.backends import get_document_store, get_identity_provider, get_object_storage, reset_backends
from apps.users.identity import Identity
from apps.users.repositories import AdminRepository
from apps.users.roles import PERMISSION_ALL, PERMISSION_READ, PERMISSION_WRITE, ROLE_ADMIN, ROLE_EMPLOYEE

ADMIN_EMAIL = 'admin@example.com'


class BaseAPITestCase(APITestCase):
    """Base test case with common setup for all API tests"""

    def setUp(self):
        reset_backends()
        cache.clear()
        self.store = get_document_store()
        self.storage = get_object_storage()
        self.provider = get_identity_provider()
        AdminRepository(store=self.store).set_email(ADMIN_EMAIL)

        self.admin = Identity('admin-uid', ADMIN_EMAIL, 'Admin', role=ROLE_ADMIN, permission=PERMISSION_ALL)
        self.writer = Identity('writer-uid', 'writer@example.com', 'Writer',
                               role=ROLE_EMPLOYEE, permission=PERMISSION_WRITE)
        self.reader = Identity('reader-uid', 'reader@example.com', 'Reader',
                               role=ROLE_EMPLOYEE, permission=PERMISSION_READ)

        self.client = APIClient()

    def tearDown(self):
        reset_backends()

    def authenticate(self, identity):
        """Helper to authenticate as a specific identity"""
        self.client.force_authenticate(user=identity)

    def unauthenticate(self):
        self.client.force_authenticate(user=None)
