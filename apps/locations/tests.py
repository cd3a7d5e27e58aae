# apps/locations/tests.py
"""
Locations app tests - location and area masters
"""
from rest_framework import status

from apps.core.testing import BaseAPITestCase
from apps.locations.repositories import AreaRepository, LocationRepository


class LocationAPITests(BaseAPITestCase):
    """Test location and area endpoints"""

    def test_create_trims_name(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/locations/', {'name': '  Andheri  '}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Andheri')
        self.assertEqual(self.store.get_document('locations', response.data['id']), {'name': 'Andheri'})

    def test_blank_name_rejected(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/areas/', {'name': '   '}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['errors'])
        self.assertEqual(self.store.list_documents('areas'), [])

    def test_list_ordered_by_name_with_search(self):
        repository = LocationRepository(store=self.store)
        for name in ['Thane', 'Andheri', 'Bandra']:
            repository.create({'name': name})
        self.authenticate(self.admin)

        response = self.client.get('/api/locations/')
        self.assertEqual([record['name'] for record in response.data['results']], ['Andheri', 'Bandra', 'Thane'])

        response = self.client.get('/api/locations/', {'search': 'AND'})
        self.assertEqual([record['name'] for record in response.data['results']], ['Andheri', 'Bandra'])

    def test_rename_and_delete(self):
        area_id = AreaRepository(store=self.store).create({'name': 'East'})
        self.authenticate(self.admin)

        response = self.client.put(f'/api/areas/{area_id}/', {'name': 'West '}, format='json')
        self.assertEqual(response.data, {'id': area_id, 'name': 'West'})

        response = self.client.delete(f'/api/areas/{area_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertIsNone(self.store.get_document('areas', area_id))

    def test_employee_reads_for_client_dropdowns(self):
        LocationRepository(store=self.store).create({'name': 'Andheri'})
        self.authenticate(self.reader)

        response = self.client.get('/api/locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_employee_cannot_write(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/locations/', {'name': 'Andheri'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
