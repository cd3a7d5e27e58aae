# apps/users/services.py
"""
Service layer for access resolution, employee accounts and profiles
"""
import logging

from django.utils import timezone

from apps.core.backends import get_document_store, get_identity_provider, get_object_storage
from apps.core.exceptions import IdentityProviderError, StorageOperationError, StoreOperationError
from apps.users.identity import Identity
from apps.users.repositories import AdminRepository, EmployeeRepository, UserProfileRepository
from apps.users.roles import ROLE_EMPLOYEE, effective_permission, resolve_role

logger = logging.getLogger(__name__)


class AccessService:
    """Turns verified token claims into the request identity"""

    @staticmethod
    def resolve(claims, store=None):
        """
        Build the Identity for verified claims.

        Role: Admin when the email matches Admin/data, otherwise myEmployee.
        Permission: 'all' for Admin, the employee profile's level otherwise
        (read when the profile is missing).
        """
        store = store or get_document_store()
        identity = Identity(
            uid=claims['uid'],
            email=claims.get('email', ''),
            display_name=claims.get('name', ''),
            photo_url=claims.get('picture', ''),
        )
        identity.role = resolve_role(identity, AdminRepository(store=store).get_email())

        permission = None
        if identity.role == ROLE_EMPLOYEE:
            profile = EmployeeRepository(store=store).get(identity.uid)
            permission = (profile or {}).get('permission')
        identity.permission = effective_permission(identity.role, permission)
        return identity


class EmployeeService:
    """
    Employee accounts: an identity-provider account plus a `myEmployee`
    profile keyed by the account uid.
    """

    @staticmethod
    def create_employee(admin, data, store=None, provider=None):
        """
        Create the account first, then the profile.

        Args:
            admin: Identity of the creating Admin (becomes createdBy)
            data: validated fields (name, email, dob, permission, password)

        Returns:
            The new employee uid

        Raises:
            IdentityProviderError: account creation refused
            StoreOperationError: profile write failed (the account is removed again)
        """
        store = store or get_document_store()
        provider = provider or get_identity_provider()

        uid = provider.create_account(data['email'], data['password'], display_name=data.get('name'))
        profile = {
            'uid': uid,
            'name': data.get('name', ''),
            'email': data['email'],
            'dob': data.get('dob', ''),
            'permission': data.get('permission', 'read'),
            'createdBy': admin.uid,
            'createdAt': timezone.now(),
        }
        try:
            EmployeeRepository(store=store).create_profile(uid, profile)
        except StoreOperationError:
            logger.error(f"Profile write for {uid} failed, removing the new account")
            provider.delete_account(uid)
            raise

        logger.info(f"Employee {uid} ({data['email']}) created by {admin.uid}")
        return uid

    @staticmethod
    def delete_employee(admin, uid, store=None, provider=None):
        """Remove the profile (scoped to the Admin) and its account"""
        store = store or get_document_store()
        provider = provider or get_identity_provider()

        repository = EmployeeRepository(store=store, where={'createdBy': admin.uid})
        existed = repository.get(uid) is not None
        # Missing profile: no-op; profile of another Admin: not found
        repository.remove(uid)
        if not existed:
            return

        try:
            provider.delete_account(uid)
        except IdentityProviderError as exc:
            if exc.reason != 'USER_NOT_FOUND':
                raise
            logger.info(f"Account {uid} was already removed")
        logger.info(f"Employee {uid} deleted by {admin.uid}")


class ProfileService:
    """Display name and photo of the signed-in account"""

    @staticmethod
    def get_profile(identity, provider=None):
        provider = provider or get_identity_provider()
        account = provider.get_account(identity.uid)
        return {
            'uid': identity.uid,
            'email': account.get('email', identity.email),
            'displayName': account.get('displayName', ''),
            'photoURL': account.get('photoURL', ''),
            'role': identity.role,
            'permission': identity.permission,
        }

    @staticmethod
    def update_display_name(identity, display_name, provider=None):
        provider = provider or get_identity_provider()
        provider.update_account(identity.uid, display_name=display_name)
        logger.info(f"Display name updated for {identity.uid}")

    @staticmethod
    def upload_photo(identity, content, content_type, store=None, storage=None, provider=None):
        """
        Store a new account photo at userProfiles/{uid}/profileImage_{timestamp},
        point the account at it, then delete the previous image.

        Returns:
            URL of the new photo
        """
        store = store or get_document_store()
        storage = storage or get_object_storage()
        provider = provider or get_identity_provider()
        profiles = UserProfileRepository(store=store)

        previous_path = profiles.get_photo_path(identity.uid)
        now = timezone.now()
        path = f"userProfiles/{identity.uid}/profileImage_{int(now.timestamp() * 1000)}"

        storage.upload(path, content, content_type=content_type)
        url = storage.url(path)
        provider.update_account(identity.uid, photo_url=url)
        profiles.set_photo_path(identity.uid, path, now)

        if previous_path and previous_path != path:
            try:
                storage.delete(previous_path)
            except StorageOperationError:
                logger.warning(f"Could not delete previous photo {previous_path}")

        logger.info(f"Photo updated for {identity.uid}")
        return url
