# apps/users/repositories.py
import logging

from apps.core.repositories import DocumentRepository
from apps.users.roles import MUTATING_PERMISSIONS, PERMISSION_READ

logger = logging.getLogger(__name__)

KNOWN_PERMISSIONS = MUTATING_PERMISSIONS | {PERMISSION_READ}


class EmployeeRepository(DocumentRepository):
    """
    Employee profiles in `myEmployee`, keyed by the account uid.
    Older profiles carry the permission level under `role`; it is read as `permission`.
    """
    collection = 'myEmployee'
    readonly_fields = ('id', 'uid', 'email', 'createdBy', 'createdAt')

    def normalize(self, doc_id, data):
        data = dict(data)
        if 'permission' not in data and data.get('role') in KNOWN_PERMISSIONS:
            data['permission'] = data.pop('role')
        return super().normalize(doc_id, data)

    def create_profile(self, uid, profile):
        """Write the profile under the account uid (merged into any existing document)"""
        self.store.set_document(self.collection, uid, profile, merge=True)
        logger.info(f"Created employee profile {uid}")
        return uid

    def create(self, record):
        return self.create_profile(record['uid'], record)


class AdminRepository(DocumentRepository):
    """Singleton `Admin/data` holding the designated Admin email"""
    collection = 'Admin'
    document_id = 'data'

    def get_email(self):
        data = self.store.get_document(self.collection, self.document_id)
        return (data or {}).get('email')

    def set_email(self, email):
        self.store.set_document(self.collection, self.document_id, {'email': email}, merge=True)


class UserProfileRepository(DocumentRepository):
    """`userProfiles/{uid}`: storage path of the current account photo"""
    collection = 'userProfiles'

    def get_photo_path(self, uid):
        return ((self.get(uid) or {}).get('photoPath')) or None

    def set_photo_path(self, uid, path, updated_at):
        self.store.set_document(self.collection, uid, {'photoPath': path, 'updatedAt': updated_at}, merge=True)
