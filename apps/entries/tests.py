# apps/entries/tests.py
"""
Entries app tests - FD, insurance, mediclaim, postal, phone log, cheque and executive screens
"""
import io

import openpyxl
from django.test import SimpleTestCase
from rest_framework import status

from apps.clients.repositories import ClientRepository
from apps.core.store import InMemoryDocumentStore
from apps.core.testing import BaseAPITestCase
from apps.entries.repositories import ChequeRepository, MediclaimRepository, PostalEntryRepository
from apps.entries.serializers import MediclaimSerializer


def fd_payload(client_id, **overrides):
    payload = {
        'clientId': client_id,
        'product': 'Bank FD',
        'depositDate': '2024-01-10',
        'amountDeposited': '50000',
        'maturityDate': '2026-01-10',
        'interestRate': '7.1',
        'bankName': 'SBI',
    }
    payload.update(overrides)
    return payload


def single_mediclaim(**overrides):
    data = {
        'fullName': 'Ravi Shah',
        'dob': '1980-04-12',
        'gender': 'Male',
        'address': {'street': '1 Hill Road', 'city': 'Mumbai', 'state': 'MH', 'zip': '400050'},
        'policyDetails': {'policyNumber': 'MC-1', 'policyType': 'Individual', 'sumInsured': '500000'},
        'paymentInfo': {'paymentMode': 'Online', 'paymentFrequency': 'Annual'},
    }
    data.update(overrides)
    return data


class EntryRepositoryTests(SimpleTestCase):
    """Test timestamps, ordering and client display resolution"""

    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_postal_entries_are_timestamped(self):
        repository = PostalEntryRepository(store=self.store)
        entry_id = repository.create({'product': 'RD', 'createdAt': 'forged'})
        created = repository.get(entry_id)

        self.assertNotEqual(created['createdAt'], 'forged')
        self.assertEqual(created['createdAt'], created['updatedAt'])

        repository.update(entry_id, {'remark': 'renewed'})
        updated = repository.get(entry_id)
        self.assertEqual(updated['createdAt'], created['createdAt'])
        self.assertGreaterEqual(updated['updatedAt'], created['updatedAt'])
        self.assertEqual(updated['remark'], 'renewed')

    def test_cheques_ordered_by_due_date(self):
        repository = ChequeRepository(store=self.store)
        for due in ['2024-03-01', '2024-01-01', '2024-02-01']:
            repository.create({'rdChequeEntry': due, 'dueDate': due})

        self.assertEqual([record['dueDate'] for record in repository.list()],
                         ['2024-01-01', '2024-02-01', '2024-03-01'])

    def test_resolve_clients(self):
        client_id = ClientRepository(store=self.store).create({'name': 'Ravi'})
        repository = PostalEntryRepository(store=self.store)

        records = repository.resolve_clients([
            {'id': 'a', 'clientId': client_id, 'secondClientId': ''},
            {'id': 'b', 'clientId': 'deleted-client'},
        ])

        self.assertEqual(records[0]['clientDisplay'], 'Ravi (PI0001)')
        self.assertEqual(records[0]['secondClientDisplay'], '')
        self.assertEqual(records[1]['clientDisplay'], '')


class MediclaimSerializerTests(SimpleTestCase):
    """Test type dependent payload validation"""

    def test_single_payload(self):
        serializer = MediclaimSerializer(data={'type': 'Single', 'data': single_mediclaim()})
        self.assertTrue(serializer.is_valid(), serializer.errors)

        data = serializer.validated_data['data']
        self.assertEqual(data['address']['city'], 'Mumbai')
        self.assertEqual(data['policyDetails']['sumInsured'], 500000.0)
        self.assertIs(type(data['address']), dict)

    def test_single_requires_holder_name(self):
        serializer = MediclaimSerializer(data={'type': 'Single', 'data': single_mediclaim(fullName='')})
        self.assertFalse(serializer.is_valid())
        self.assertIn('fullName', serializer.errors['data'])

    def test_family_payload(self):
        serializer = MediclaimSerializer(data={'type': 'Family', 'data': {
            'policyholderName': 'Ravi Shah',
            'dob': '1980-04-12',
            'familyMembers': [{'fullName': 'Meera Shah', 'relationship': 'Wife'}],
        }})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['data']['familyMembers'][0]['fullName'], 'Meera Shah')

    def test_payload_shape_follows_type(self):
        serializer = MediclaimSerializer(data={'type': 'Family', 'data': single_mediclaim()})
        self.assertFalse(serializer.is_valid())
        self.assertIn('policyholderName', serializer.errors['data'])


class EntryAPITests(BaseAPITestCase):
    """Test entry endpoints"""

    def setUp(self):
        super().setUp()
        self.client_id = ClientRepository(store=self.store).create({'name': 'Ravi', 'city': 'Mumbai'})

    def test_create_fd_entry(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/fd-entries/', fd_payload(self.client_id), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amountDeposited'], 50000.0)
        self.assertEqual(response.data['clientDisplay'], 'Ravi (PI0001)')

    def test_fd_needs_a_client(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/fd-entries/', fd_payload(''), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('clientId', response.data['errors'])

    def test_fd_second_client_is_enough(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/fd-entries/', fd_payload('', secondClientId=self.client_id), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_fd_unknown_client_rejected(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/fd-entries/', fd_payload('missing'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['clientId'], ['Unknown client.'])

    def test_fd_screen_is_admin_only(self):
        self.authenticate(self.writer)
        response = self.client.get('/api/fd-entries/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_insurance_requires_every_field(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/insurances/', {'clientId': self.client_id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ['product', 'policyDate', 'premiumMode', 'nomineeName', 'chequeNumber']:
            self.assertIn(field, response.data['errors'])

    def test_postal_entry_minor_nominee_needs_guardian(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/postal-entries/', {'isNomineeMinor': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('nomineeGuardianName', response.data['errors'])

        response = self.client.post('/api/postal-entries/', {
            'isNomineeMinor': True,
            'nomineeGuardianName': 'Meera',
            'amount': '',
            'interestRate': '6.7',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['amount'])
        self.assertEqual(response.data['interestRate'], 6.7)

    def test_postal_entries_search_by_client(self):
        repository = PostalEntryRepository(store=self.store)
        repository.create({'clientId': self.client_id, 'cifId1': 'C1'})
        repository.create({'cifId1': 'C2'})
        self.authenticate(self.reader)

        response = self.client.get('/api/postal-entries/', {'search': 'pi0001'})
        self.assertEqual([record['cifId1'] for record in response.data['results']], ['C1'])

    def test_mediclaim_filter_and_export(self):
        repository = MediclaimRepository(store=self.store)
        repository.create({'type': 'Single', 'data': single_mediclaim()})
        repository.create({'type': 'Family', 'data': {'policyholderName': 'Anil', 'dob': '1970-01-01'}})
        self.authenticate(self.reader)

        response = self.client.get('/api/mediclaim/', {'entryType': 'Single'})
        self.assertEqual([record['holderName'] for record in response.data['results']], ['Ravi Shah'])

        response = self.client.get('/api/mediclaim/export/', {'type': 'xlsx', 'entryType': 'Single'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sheet = openpyxl.load_workbook(io.BytesIO(response.content)).active
        header = [cell.value for cell in sheet[1]]
        self.assertIn('Address_City', header)
        self.assertIn('PolicyDetails_PolicyNumber', header)
        self.assertEqual(sheet.max_row, 2)

    def test_mediclaim_update_replaces_payload(self):
        entry_id = MediclaimRepository(store=self.store).create({'type': 'Single', 'data': single_mediclaim()})
        self.authenticate(self.writer)

        response = self.client.patch(f'/api/mediclaim/{entry_id}/', {
            'data': {'fullName': 'Ravi S', 'dob': '1980-04-12'},
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'fullName': 'Ravi S', 'dob': '1980-04-12'})

    def test_reader_cannot_delete(self):
        entry_id = ChequeRepository(store=self.store).create({'rdChequeEntry': 'RD1', 'dueDate': '2024-01-01'})
        self.authenticate(self.reader)

        response = self.client.delete(f'/api/cheques/{entry_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIsNotNone(self.store.get_document('cheques', entry_id))

    def test_phone_log_crud(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/phone-logs/', {
            'employeeId': 'E1',
            'employeeName': 'Sunil',
            'phoneNumber': '9820000001',
            'taskDescription': 'Call about renewal',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log_id = response.data['id']

        response = self.client.patch(f'/api/phone-logs/{log_id}/', {'taskDescription': 'Done'}, format='json')
        self.assertEqual(response.data['taskDescription'], 'Done')
        self.assertEqual(response.data['employeeName'], 'Sunil')

        response = self.client.delete(f'/api/phone-logs/{log_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_executives_ordered_by_name(self):
        self.authenticate(self.admin)
        for name, employee_id in [('Zara', 'E2'), ('Amit', 'E1')]:
            self.client.post('/api/executives/', {'name': name, 'employeeId': employee_id, 'salary': '25000'},
                             format='json')

        response = self.client.get('/api/executives/')
        self.assertEqual([record['name'] for record in response.data['results']], ['Amit', 'Zara'])

    def test_executives_readable_from_phone_log(self):
        self.authenticate(self.reader)
        self.assertEqual(self.client.get('/api/executives/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/executives/', {'name': 'X', 'employeeId': 'E9'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pdf_export(self):
        ChequeRepository(store=self.store).create({'rdChequeEntry': 'RD1', 'dueDate': '2024-01-01'})
        self.authenticate(self.reader)

        response = self.client.get('/api/cheques/export/', {'type': 'pdf', 'name': 'Desk', 'date': '2024-01-02'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
