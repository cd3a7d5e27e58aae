# apps/users/tests.py
"""
Users app tests - roles, authentication, employees and profile
"""
from io import StringIO
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import CommandError, call_command
from django.test import SimpleTestCase
from rest_framework import status

from apps.core.exceptions import IdentityProviderError, StoreOperationError
from apps.core.testing import ADMIN_EMAIL, BaseAPITestCase
from apps.users import roles
from apps.users.identity import FirebaseIdentityProvider, Identity
from apps.users.repositories import AdminRepository, EmployeeRepository, UserProfileRepository
from apps.users.services import AccessService


def nav_names(navigation):
    names = []
    for item in navigation:
        names.append(item['name'])
        names.extend(child['name'] for child in item.get('children', ()))
    return names


class RoleTests(SimpleTestCase):
    """Test role resolution and the composed view"""

    def test_resolve_role(self):
        admin = Identity('u1', 'Admin@Example.com')
        employee = Identity('u2', 'someone@example.com')

        self.assertEqual(roles.resolve_role(admin, 'admin@example.com'), roles.ROLE_ADMIN)
        self.assertEqual(roles.resolve_role(employee, 'admin@example.com'), roles.ROLE_EMPLOYEE)
        self.assertEqual(roles.resolve_role(employee, None), roles.ROLE_EMPLOYEE)
        self.assertIsNone(roles.resolve_role(None, 'admin@example.com'))

    def test_can_mutate(self):
        self.assertFalse(roles.can_mutate('read'))
        self.assertFalse(roles.can_mutate(None))
        self.assertTrue(roles.can_mutate('write'))
        self.assertTrue(roles.can_mutate('all'))

    def test_can_view(self):
        self.assertTrue(roles.can_view(roles.POSTAL_ENTRY, roles.ROLE_EMPLOYEE))
        self.assertFalse(roles.can_view(roles.FD_ENTRY, roles.ROLE_EMPLOYEE))
        self.assertFalse(roles.can_view(roles.PRODUCT_MASTER, roles.ROLE_EMPLOYEE))
        self.assertTrue(roles.can_view(roles.PRODUCT_MASTER, roles.ROLE_ADMIN))
        self.assertFalse(roles.can_view('Unknown', roles.ROLE_ADMIN))
        self.assertFalse(roles.can_view(roles.DASHBOARD, None))

    def test_employee_navigation_drops_admin_entries(self):
        names = nav_names(roles.compose_navigation(roles.ROLE_EMPLOYEE))

        self.assertNotIn(roles.MASTERS, names)
        self.assertNotIn(roles.EMPLOYEE, names)
        self.assertNotIn(roles.FD_ENTRY, names)
        self.assertIn(roles.TRANSACTIONS, names)
        self.assertIn(roles.PHONE_LOG_BOOK, names)

    def test_admin_navigation_is_complete(self):
        names = nav_names(roles.compose_navigation(roles.ROLE_ADMIN))
        self.assertIn(roles.LOCATION_AREA_MASTER, names)
        self.assertIn(roles.NOTIFICATION_MANAGEMENT, names)
        self.assertEqual(len(names), 17)

    def test_read_permission_disables_mutating_actions(self):
        view = roles.compose_view(roles.ROLE_EMPLOYEE, roles.PERMISSION_READ)
        self.assertEqual(view['actions'], {'create': False, 'update': False, 'delete': False, 'export': True})

        view = roles.compose_view(roles.ROLE_ADMIN, None)
        self.assertEqual(view['permission'], roles.PERMISSION_ALL)
        self.assertTrue(view['actions']['delete'])


class AccessServiceTests(BaseAPITestCase):
    """Test identity resolution from token claims"""

    def test_admin_gets_all(self):
        identity = AccessService.resolve({'uid': 'a', 'email': ADMIN_EMAIL.upper()}, store=self.store)
        self.assertEqual(identity.role, roles.ROLE_ADMIN)
        self.assertEqual(identity.permission, roles.PERMISSION_ALL)

    def test_employee_permission_from_profile(self):
        EmployeeRepository(store=self.store).create_profile('e1', {'uid': 'e1', 'permission': 'write'})
        identity = AccessService.resolve({'uid': 'e1', 'email': 'e1@example.com'}, store=self.store)
        self.assertEqual(identity.role, roles.ROLE_EMPLOYEE)
        self.assertEqual(identity.permission, roles.PERMISSION_WRITE)

    def test_legacy_role_field(self):
        self.store.set_document('myEmployee', 'e2', {'uid': 'e2', 'role': 'write'})
        identity = AccessService.resolve({'uid': 'e2', 'email': 'e2@example.com'}, store=self.store)
        self.assertEqual(identity.permission, roles.PERMISSION_WRITE)

    def test_missing_profile_reads_only(self):
        identity = AccessService.resolve({'uid': 'x', 'email': 'x@example.com'}, store=self.store)
        self.assertEqual(identity.permission, roles.PERMISSION_READ)


class AuthenticationTests(BaseAPITestCase):
    """Test bearer token authentication and sign-in"""

    def test_sign_in_and_me(self):
        self.provider.create_account('staff@example.com', 'secret1', display_name='Staff')
        response = self.client.post('/api/auth/sign-in/', {'email': 'staff@example.com', 'password': 'secret1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['idToken']}")
        response = self.client.get('/api/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], roles.ROLE_EMPLOYEE)
        self.assertEqual(response.data['user']['displayName'], 'Staff')
        self.assertFalse(response.data['actions']['create'])

    def test_wrong_password(self):
        self.provider.create_account('staff@example.com', 'secret1')
        response = self.client.post('/api/auth/sign-in/', {'email': 'staff@example.com', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid email or password.')

    def test_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer forged')
        response = self.client.get('/api/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid or expired authentication token.')

    def test_missing_token(self):
        response = self.client.get('/api/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class EmployeeAPITests(BaseAPITestCase):
    """Test employee account management"""

    def payload(self, **overrides):
        payload = {
            'name': 'Sunil',
            'email': 'sunil@example.com',
            'dob': '1990-01-01',
            'permission': 'write',
            'password': 'secret1',
            'confirmPassword': 'secret1',
        }
        payload.update(overrides)
        return payload

    def test_create_employee(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/employees/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        uid = response.data['id']
        self.assertEqual(response.data['createdBy'], self.admin.uid)
        self.assertNotIn('password', response.data)
        self.assertEqual(self.provider.get_account(uid)['email'], 'sunil@example.com')

    def test_password_rules(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/employees/', self.payload(confirmPassword='other1'), format='json')
        self.assertIn('confirmPassword', response.data['errors'])

        response = self.client.post('/api/employees/', self.payload(password='abc', confirmPassword='abc'),
                                    format='json')
        self.assertEqual(response.data['errors']['password'], ['Password should be at least 6 characters.'])
        self.assertEqual(self.provider.accounts, {})

    def test_duplicate_email(self):
        self.provider.create_account('sunil@example.com', 'secret1')
        self.authenticate(self.admin)

        response = self.client.post('/api/employees/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'An account with this email already exists.')

    def test_profile_write_failure_removes_account(self):
        self.authenticate(self.admin)
        with mock.patch.object(EmployeeRepository, 'create_profile', side_effect=StoreOperationError()):
            response = self.client.post('/api/employees/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(self.provider.accounts, {})

    def test_list_is_scoped_to_admin(self):
        repository = EmployeeRepository(store=self.store)
        repository.create_profile('e1', {'uid': 'e1', 'name': 'Mine', 'createdBy': self.admin.uid})
        repository.create_profile('e2', {'uid': 'e2', 'name': 'Theirs', 'createdBy': 'other-admin'})
        self.authenticate(self.admin)

        response = self.client.get('/api/employees/')
        self.assertEqual([record['name'] for record in response.data['results']], ['Mine'])
        self.assertEqual(self.client.get('/api/employees/e2/').status_code, status.HTTP_404_NOT_FOUND)

    def test_update_permission(self):
        self.authenticate(self.admin)
        uid = self.client.post('/api/employees/', self.payload(), format='json').data['id']

        response = self.client.patch(f'/api/employees/{uid}/', {'permission': 'read', 'email': 'x@example.com'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['permission'], 'read')
        self.assertEqual(response.data['email'], 'sunil@example.com')

    def test_full_update_keeps_permission(self):
        self.authenticate(self.admin)
        uid = self.client.post('/api/employees/', self.payload(), format='json').data['id']

        response = self.client.put(f'/api/employees/{uid}/', {'name': 'Sunil K'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Sunil K')
        self.assertEqual(response.data['permission'], 'write')

    def test_create_defaults_to_read(self):
        self.authenticate(self.admin)
        payload = self.payload()
        del payload['permission']
        response = self.client.post('/api/employees/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['permission'], 'read')

    def test_delete_removes_account(self):
        self.authenticate(self.admin)
        uid = self.client.post('/api/employees/', self.payload(), format='json').data['id']

        response = self.client.delete(f'/api/employees/{uid}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertNotIn(uid, self.provider.accounts)
        self.assertIsNone(self.store.get_document('myEmployee', uid))

        response = self.client.delete(f'/api/employees/{uid}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_employees_cannot_manage_employees(self):
        self.authenticate(self.writer)
        self.assertEqual(self.client.get('/api/employees/').status_code, status.HTTP_403_FORBIDDEN)


class ProfileAPITests(BaseAPITestCase):
    """Test display name and photo updates"""

    def setUp(self):
        super().setUp()
        uid = self.provider.create_account('writer@example.com', 'secret1', display_name='Writer')
        self.writer.uid = uid

    def test_update_display_name(self):
        self.authenticate(self.writer)
        response = self.client.patch('/api/profile/', {'displayName': 'New Name'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['displayName'], 'New Name')
        self.assertEqual(self.provider.get_account(self.writer.uid)['displayName'], 'New Name')

    def test_photo_replaces_previous(self):
        self.storage.upload(f'userProfiles/{self.writer.uid}/old', b'old', content_type='image/png')
        UserProfileRepository(store=self.store).set_photo_path(self.writer.uid, f'userProfiles/{self.writer.uid}/old',
                                                               None)
        self.authenticate(self.writer)

        photo = SimpleUploadedFile('me.png', b'\x89PNG', content_type='image/png')
        response = self.client.post('/api/profile/photo/', {'photo': photo}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.provider.get_account(self.writer.uid)['photoURL'], response.data['photoURL'])
        path = UserProfileRepository(store=self.store).get_photo_path(self.writer.uid)
        self.assertTrue(path.startswith(f'userProfiles/{self.writer.uid}/profileImage_'))
        self.assertIn(path, self.storage.objects)
        self.assertNotIn(f'userProfiles/{self.writer.uid}/old', self.storage.objects)

    def test_photo_must_be_an_image(self):
        self.authenticate(self.writer)
        upload = SimpleUploadedFile('notes.txt', b'text', content_type='text/plain')
        response = self.client.post('/api/profile/photo/', {'photo': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SignInRequestTests(SimpleTestCase):
    """Test the Identity Toolkit sign-in call"""

    def setUp(self):
        self.provider = FirebaseIdentityProvider(app=object())

    def respond(self, status_code, payload=None, content=b'{}'):
        response = mock.Mock(status_code=status_code, content=content)
        if payload is None:
            response.json.side_effect = ValueError('Expecting value')
        else:
            response.json.return_value = payload
        return mock.patch('apps.users.identity.requests.post', return_value=response)

    def test_tokens_returned(self):
        with self.respond(200, {'idToken': 't1', 'refreshToken': 'r1', 'expiresIn': '3600', 'localId': 'u1'}):
            tokens = self.provider.sign_in('sunil@example.com', 'secret1')

        self.assertEqual(tokens['idToken'], 't1')
        self.assertEqual(tokens['localId'], 'u1')
        self.assertEqual(tokens['email'], 'sunil@example.com')

    def test_rejected_credentials(self):
        with self.respond(400, {'error': {'message': 'INVALID_LOGIN_CREDENTIALS'}}):
            with self.assertRaises(IdentityProviderError) as raised:
                self.provider.sign_in('sunil@example.com', 'wrong')

        self.assertEqual(raised.exception.detail['message'], 'Invalid email or password.')

    def test_html_error_page(self):
        with self.respond(502, content=b'<html>Bad Gateway</html>'):
            with self.assertRaises(IdentityProviderError) as raised:
                self.provider.sign_in('sunil@example.com', 'secret1')

        self.assertEqual(raised.exception.detail['message'], 'Sign-in service unavailable. Please retry.')


class SetAdminCommandTests(BaseAPITestCase):
    """Test designating the Admin account"""

    def test_designates_admin(self):
        out = StringIO()
        call_command('set_admin', 'Owner@example.com', stdout=out)

        self.assertEqual(AdminRepository(store=self.store).get_email(), 'Owner@example.com')
        self.assertIn(f'Replaced Admin {ADMIN_EMAIL}', out.getvalue())

        identity = AccessService.resolve({'uid': 'o1', 'email': 'owner@example.com'}, store=self.store)
        self.assertEqual(identity.role, roles.ROLE_ADMIN)
        identity = AccessService.resolve({'uid': 'a1', 'email': ADMIN_EMAIL}, store=self.store)
        self.assertEqual(identity.role, roles.ROLE_EMPLOYEE)

    def test_first_admin(self):
        self.store.delete_document('Admin', 'data')
        out = StringIO()
        call_command('set_admin', 'owner@example.com', stdout=out)

        self.assertEqual(AdminRepository(store=self.store).get_email(), 'owner@example.com')
        self.assertNotIn('Replaced', out.getvalue())

    def test_invalid_email(self):
        with self.assertRaises(CommandError):
            call_command('set_admin', 'not-an-email', stdout=StringIO())
        self.assertEqual(AdminRepository(store=self.store).get_email(), ADMIN_EMAIL)
