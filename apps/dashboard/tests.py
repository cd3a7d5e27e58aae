# apps/dashboard/tests.py
"""
Dashboard app tests - summary counts
"""
from rest_framework import status

from apps.clients.repositories import ClientRepository
from apps.core.testing import BaseAPITestCase
from apps.entries.repositories import FDEntryRepository, MediclaimRepository
from apps.users.repositories import EmployeeRepository

URL = '/api/dashboard/summary/'


class DashboardSummaryTests(BaseAPITestCase):
    """Test Dashboard Summary endpoint"""

    def setUp(self):
        super().setUp()
        clients = ClientRepository(store=self.store)
        first = clients.create({'name': 'Ravi'})
        clients.create({'name': 'Anil'})
        clients.add_family_member(first, {'relation': 'Wife', 'name': 'Meera'})
        clients.add_family_member(first, {'relation': 'Children', 'name': 'Dev'})

        employees = EmployeeRepository(store=self.store)
        employees.create({'uid': 'e1', 'name': 'Sunil', 'createdBy': self.admin.uid})
        employees.create({'uid': 'e2', 'name': 'Other', 'createdBy': 'another-admin'})

        FDEntryRepository(store=self.store).create({'clientId': first, 'product': 'Bank FD'})
        MediclaimRepository(store=self.store).create({'type': 'Single', 'data': {}})
        MediclaimRepository(store=self.store).create({'type': 'Family', 'data': {}})

    def test_admin_summary(self):
        self.authenticate(self.admin)
        response = self.client.get(URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'totalClients': 2,
            'totalFamilyMembers': 2,
            'totalEmployees': 1,
            'totalFdEntries': 1,
            'totalMediclaimEntries': 2,
        })

    def test_employee_summary_hides_employee_total(self):
        self.authenticate(self.reader)
        response = self.client.get(URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['totalEmployees'])
        self.assertEqual(response.data['totalClients'], 2)

    def test_requires_authentication(self):
        response = self.client.get(URL)
        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])
