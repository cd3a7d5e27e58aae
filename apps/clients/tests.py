# apps/clients/tests.py
"""
Clients app tests - code generation, client API, family members and runsheet
"""
import threading
from io import StringIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import SimpleTestCase, override_settings
from rest_framework import status

from apps.clients.codes import COUNTER_COLLECTION, COUNTER_DOCUMENT, format_client_code, generate_client_code
from apps.clients.repositories import ClientRepository, client_display
from apps.clients.serializers import ClientSerializer
from apps.core.exceptions import TransactionConflictError
from apps.core.store import InMemoryDocumentStore
from apps.core.testing import BaseAPITestCase


def client_payload(**overrides):
    payload = {
        'name': 'Ravi',
        'familyName': 'Shah',
        'dob': '1980-04-12',
        'number': '9820000000',
        'email': 'ravi@example.com',
        'maritalStatus': 'No',
        'city': 'Mumbai',
        'location': 'Andheri',
        'area': 'West',
        'state': 'Maharashtra',
    }
    payload.update(overrides)
    return payload


class InterferingStore(InMemoryDocumentStore):
    """Bumps the client counter from inside the first `interference` transaction attempts"""

    def __init__(self, interference):
        super().__init__()
        self.interference = interference
        self.attempts = 0

    def run_transaction(self, func, max_attempts=None):
        def interfered(transaction):
            result = func(transaction)
            self.attempts += 1
            if self.attempts <= self.interference:
                current = self.get_document(COUNTER_COLLECTION, COUNTER_DOCUMENT) or {}
                self.set_document(COUNTER_COLLECTION, COUNTER_DOCUMENT, {'count': current.get('count', 0) + 1})
            return result

        return super().run_transaction(interfered, max_attempts=max_attempts)


@override_settings(CLIENT_CODE_PREFIX='PI', CLIENT_CODE_WIDTH=4, STORE_TRANSACTION_MAX_ATTEMPTS=5)
class ClientCodeTests(SimpleTestCase):
    """Test the counter-based client code generator"""

    def test_format_pads_to_four_digits(self):
        self.assertEqual(format_client_code(1), 'PI0001')
        self.assertEqual(format_client_code(42), 'PI0042')

    def test_format_keeps_wide_numbers_whole(self):
        self.assertEqual(format_client_code(12345), 'PI12345')

    def test_first_code_starts_from_missing_counter(self):
        store = InMemoryDocumentStore()
        client_id, code = generate_client_code(store, {'name': 'A'})

        self.assertEqual(code, 'PI0001')
        self.assertEqual(store.get_document('clients', client_id)['clientNumber'], 'PI0001')
        self.assertEqual(store.get_document(COUNTER_COLLECTION, COUNTER_DOCUMENT), {'count': 1})

    def test_sequential_creates_are_gap_free(self):
        store = InMemoryDocumentStore()
        codes = [generate_client_code(store, {'name': str(i)})[1] for i in range(3)]

        self.assertEqual(codes, ['PI0001', 'PI0002', 'PI0003'])
        self.assertEqual(store.get_document(COUNTER_COLLECTION, COUNTER_DOCUMENT)['count'], 3)

    def test_given_client_number_is_overwritten(self):
        store = InMemoryDocumentStore()
        client_id, _ = generate_client_code(store, {'name': 'A', 'clientNumber': 'PI9999'})
        self.assertEqual(store.get_document('clients', client_id)['clientNumber'], 'PI0001')

    def test_concurrent_creates_get_distinct_codes(self):
        store = InMemoryDocumentStore()
        results = []
        lock = threading.Lock()

        def create(index):
            _, code = generate_client_code(store, {'name': f'client {index}'})
            with lock:
                results.append(code)

        threads = [threading.Thread(target=create, args=(index,)) for index in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(results), [format_client_code(n) for n in range(1, 21)])
        self.assertEqual(store.get_document(COUNTER_COLLECTION, COUNTER_DOCUMENT)['count'], 20)
        self.assertEqual(len(store.list_documents('clients')), 20)

    def test_three_concurrent_creates_from_zero(self):
        store = InMemoryDocumentStore()
        repository = ClientRepository(store=store)
        threads = [
            threading.Thread(target=repository.create, args=({'name': name},))
            for name in ['Asha', 'Bina', 'Chetan']
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        codes = {record['clientNumber'] for record in repository.list()}
        self.assertEqual(codes, {'PI0001', 'PI0002', 'PI0003'})
        self.assertEqual(store.get_document(COUNTER_COLLECTION, COUNTER_DOCUMENT), {'count': 3})

    def test_conflicting_counter_write_is_retried(self):
        store = InterferingStore(interference=1)
        _, code = generate_client_code(store, {'name': 'A'})

        # The interfering write took number 1
        self.assertEqual(code, 'PI0002')
        self.assertEqual(store.attempts, 2)
        self.assertEqual(len(store.list_documents('clients')), 1)

    def test_exhausted_retries_persist_nothing(self):
        store = InterferingStore(interference=100)

        with self.assertRaises(TransactionConflictError):
            generate_client_code(store, {'name': 'A'}, max_attempts=3)

        self.assertEqual(store.attempts, 3)
        self.assertEqual(store.list_documents('clients'), [])


class ClientRepositoryTests(SimpleTestCase):
    """Test client repository behaviour on top of the in-memory store"""

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.repository = ClientRepository(store=self.store)

    def test_create_ignores_readonly_fields(self):
        client_id = self.repository.create({'name': 'A', 'familyMembers': [{'name': 'x'}], 'clientNumber': 'X'})
        record = self.repository.get(client_id)

        self.assertEqual(record['clientNumber'], 'PI0001')
        self.assertEqual(record['familyMembers'], [])

    def test_update_cannot_change_client_number(self):
        client_id = self.repository.create({'name': 'A'})
        self.repository.update(client_id, {'clientNumber': 'PI0999', 'city': 'Pune'})
        record = self.repository.get(client_id)

        self.assertEqual(record['clientNumber'], 'PI0001')
        self.assertEqual(record['city'], 'Pune')
        self.assertEqual(record['name'], 'A')

    def test_list_ordered_by_client_number(self):
        for name in ['A', 'B', 'C']:
            self.repository.create({'name': name})
        self.assertEqual([record['clientNumber'] for record in self.repository.list()],
                         ['PI0001', 'PI0002', 'PI0003'])

    def test_family_members_are_appended_in_order(self):
        client_id = self.repository.create({'name': 'A'})
        self.repository.add_family_member(client_id, {'relation': 'Wife', 'name': 'B'})
        self.repository.add_family_member(client_id, {'relation': 'Children', 'name': 'C'})

        members = self.repository.family_members()
        self.assertEqual([member['name'] for member in members], ['B', 'C'])
        self.assertEqual(members[1]['position'], 2)
        self.assertEqual(members[0]['clientCode'], 'PI0001')

    def test_client_display(self):
        self.assertEqual(client_display({'name': 'Ravi', 'clientNumber': 'PI0007'}), 'Ravi (PI0007)')
        self.assertEqual(client_display(None), '')


class ClientSerializerTests(SimpleTestCase):
    """Test marital status dependent validation"""

    def test_spouse_required_when_married(self):
        serializer = ClientSerializer(data=client_payload(maritalStatus='Yes'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('spouseName', serializer.errors)

    def test_spouse_accepted_when_given(self):
        serializer = ClientSerializer(data=client_payload(maritalStatus='Yes', spouseName='Meera'))
        self.assertTrue(serializer.is_valid(), serializer.errors)

    def test_spouse_cleared_when_not_married(self):
        serializer = ClientSerializer(data=client_payload(maritalStatus='No', spouseName='Meera'))
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['spouseName'], '')

    def test_partial_update_checks_stored_record(self):
        serializer = ClientSerializer(
            data={'spouseName': ''},
            partial=True,
            context={'existing': {'maritalStatus': 'Yes', 'spouseName': 'Meera'}},
        )
        self.assertFalse(serializer.is_valid())
        self.assertIn('spouseName', serializer.errors)

    def test_invalid_date_rejected(self):
        serializer = ClientSerializer(data=client_payload(dob='12/04/1980'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('dob', serializer.errors)


class ClientAPITests(BaseAPITestCase):
    """Test client API endpoints"""

    def create_client(self, **overrides):
        return ClientRepository(store=self.store).create(client_payload(**overrides))

    def test_create_client_assigns_code(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/clients/', client_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['clientNumber'], 'PI0001')
        self.assertEqual(response.data['familyMembers'], [])

    def test_create_client_validation_error(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/clients/', {'name': 'Ravi'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('familyName', response.data['errors'])
        self.assertEqual(self.store.list_documents('clients'), [])

    def test_writer_employee_can_create(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/clients/', client_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_reader_employee_cannot_create(self):
        self.authenticate(self.reader)
        response = self.client.post('/api/clients/', client_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Your permission level only allows viewing records.')

    def test_reader_employee_can_list(self):
        self.create_client()
        self.authenticate(self.reader)
        response = self.client.get('/api/clients/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_unauthenticated_rejected(self):
        response = self.client.get('/api/clients/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_search_and_filter(self):
        self.create_client(name='Ravi', city='Mumbai')
        self.create_client(name='Anil', city='Pune', email='anil@example.com')
        self.create_client(name='Ravindra', city='Pune', email='ravindra@example.com')
        self.authenticate(self.admin)

        response = self.client.get('/api/clients/', {'search': 'rav', 'city': 'Pune'})
        self.assertEqual([record['name'] for record in response.data['results']], ['Ravindra'])

        response = self.client.get('/api/clients/?city=Pune&city=Mumbai')
        self.assertEqual(response.data['count'], 3)

    def test_partial_update_merges(self):
        client_id = self.create_client()
        self.authenticate(self.admin)
        response = self.client.patch(f'/api/clients/{client_id}/', {'city': 'Thane'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['city'], 'Thane')
        self.assertEqual(response.data['name'], 'Ravi')
        self.assertEqual(response.data['clientNumber'], 'PI0001')

    def test_full_update_keeps_omitted_marital_status(self):
        client_id = self.create_client(maritalStatus='Yes', spouseName='Meera')
        self.authenticate(self.admin)
        response = self.client.put(f'/api/clients/{client_id}/', {
            'name': 'Ravi Kumar',
            'familyName': 'Shah',
            'dob': '1980-04-12',
            'number': '9820000000',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Ravi Kumar')
        self.assertEqual(response.data['maritalStatus'], 'Yes')
        self.assertEqual(response.data['spouseName'], 'Meera')

    def test_create_defaults_to_unmarried(self):
        self.authenticate(self.admin)
        payload = client_payload()
        del payload['maritalStatus']
        response = self.client.post('/api/clients/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['maritalStatus'], 'No')

    def test_partial_update_marriage_needs_spouse(self):
        client_id = self.create_client()
        self.authenticate(self.admin)
        response = self.client.patch(f'/api/clients/{client_id}/', {'maritalStatus': 'Yes'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('spouseName', response.data['errors'])
        self.assertEqual(self.store.get_document('clients', client_id)['maritalStatus'], 'No')

    def test_update_missing_client_not_found(self):
        self.authenticate(self.admin)
        response = self.client.patch('/api/clients/missing/', {'city': 'Thane'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_is_idempotent(self):
        client_id = self.create_client()
        self.authenticate(self.admin)

        response = self.client.delete(f'/api/clients/{client_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.delete(f'/api/clients/{client_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertIsNone(self.store.get_document('clients', client_id))

    def test_add_family_member(self):
        client_id = self.create_client()
        self.authenticate(self.admin)
        response = self.client.post(
            f'/api/clients/{client_id}/family-members/',
            {'relation': 'Wife', 'name': 'Meera', 'dob': '1982-01-01'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Meera')

        response = self.client.get('/api/family-members/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['clientCode'], 'PI0001')

    def test_family_member_relation_validated(self):
        client_id = self.create_client()
        self.authenticate(self.admin)
        response = self.client.post(
            f'/api/clients/{client_id}/family-members/',
            {'relation': 'Cousin', 'name': 'X'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('relation', response.data['errors'])

    def test_profile_picture_replaced(self):
        client_id = self.create_client()
        self.authenticate(self.admin)

        first = self.client.post(
            f'/api/clients/{client_id}/profile-picture/',
            {'picture': SimpleUploadedFile('a.png', b'first', content_type='image/png')},
            format='multipart',
        )
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        first_path = self.store.get_document('clients', client_id)['profilePicturePath']
        self.assertTrue(first_path.startswith(f'clientProfiles/{client_id}/profileImage_'))
        self.assertEqual(first.data['profilePictureUrl'], f'memory://{first_path}')

        self.store.update_document('clients', client_id, {'profilePicturePath': 'clientProfiles/old'})
        self.storage.objects['clientProfiles/old'] = (b'old', 'image/png')

        second = self.client.post(
            f'/api/clients/{client_id}/profile-picture/',
            {'picture': SimpleUploadedFile('b.png', b'second', content_type='image/png')},
            format='multipart',
        )
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertNotIn('clientProfiles/old', self.storage.objects)

    def test_profile_picture_must_be_image(self):
        client_id = self.create_client()
        self.authenticate(self.admin)
        response = self.client.post(
            f'/api/clients/{client_id}/profile-picture/',
            {'picture': SimpleUploadedFile('a.txt', b'text', content_type='text/plain')},
            format='multipart',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_values(self):
        self.create_client(city='Pune', location='Kothrud')
        self.create_client(city='Mumbai', location='')
        self.create_client(city='Pune', location='Baner')
        self.authenticate(self.reader)

        response = self.client.get('/api/clients/filters/')
        self.assertEqual(response.data['city'], ['Mumbai', 'Pune'])
        self.assertEqual(response.data['location'], ['Baner', 'Kothrud'])

    def test_export_spreadsheet(self):
        self.create_client()
        self.authenticate(self.reader)
        response = self.client.get('/api/clients/export/', {'type': 'xlsx'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'],
                         'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        self.assertIn('attachment;', response['Content-Disposition'])

    def test_export_rejects_unknown_type(self):
        self.authenticate(self.admin)
        response = self.client.get('/api/clients/export/', {'type': 'csv'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_runsheet_pdf(self):
        first = self.create_client(name='Ravi', location='')
        second = self.create_client(name='Anil')
        self.authenticate(self.admin)

        response = self.client.post('/api/clients/runsheet/', {
            'clientIds': [first, second],
            'name': 'Courier',
            'date': '2024-05-01',
            'pickupDelivery': {first: 'Collect cheque'},
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_runsheet_admin_only(self):
        client_id = self.create_client()
        self.authenticate(self.writer)
        response = self.client.post('/api/clients/runsheet/', {'clientIds': [client_id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_runsheet_unknown_client(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/clients/runsheet/', {'clientIds': ['missing']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('clientIds', response.data['errors'])


class SeedClientsCommandTests(BaseAPITestCase):
    """Test the Faker seeding command"""

    def test_seed_clients(self):
        out = StringIO()
        call_command('seed_clients', count=3, max_family=0, stdout=out)

        clients = ClientRepository(store=self.store).list()
        self.assertEqual(len(clients), 3)
        self.assertEqual(sorted(client['clientNumber'] for client in clients), ['PI0001', 'PI0002', 'PI0003'])
        self.assertTrue(all(client['familyMembers'] == [] for client in clients))
        self.assertIn('Successfully created 3 clients with 0 family members!', out.getvalue())
