# apps/catalog/tests.py
"""
Catalog app tests - product categories and items
"""
import uuid

from django.test import SimpleTestCase
from rest_framework import status

from apps.catalog.repositories import ProductCatalogRepository
from apps.core.exceptions import DocumentNotFoundError, DuplicateCategoryError
from apps.core.store import InMemoryDocumentStore
from apps.core.testing import BaseAPITestCase


class ProductCatalogRepositoryTests(SimpleTestCase):
    """Test catalog operations on the single master document"""

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.repository = ProductCatalogRepository(store=self.store)

    def test_missing_document_is_empty_catalog(self):
        self.assertEqual(self.repository.get_catalog(), {})

    def test_add_category(self):
        self.repository.add_category('Bonds')
        self.assertEqual(self.store.get_document('ProductMaster', 'masterData'), {'data': {'Bonds': []}})

    def test_duplicate_category_rejected(self):
        self.repository.add_category('Bonds')
        with self.assertRaises(DuplicateCategoryError):
            self.repository.add_category('Bonds')

    def test_category_names_are_case_sensitive(self):
        self.repository.add_category('Bonds')
        self.repository.add_category('bonds')
        self.assertEqual(sorted(self.repository.get_catalog()), ['Bonds', 'bonds'])

    def test_add_item_assigns_uuid(self):
        self.repository.add_category('Bonds')
        item = self.repository.add_item('Bonds', '  RBI Bond  ')

        self.assertEqual(item['name'], 'RBI Bond')
        self.assertEqual(str(uuid.UUID(item['id'])), item['id'])
        self.assertEqual(self.repository.get_catalog()['Bonds'], [item])

    def test_add_item_to_unknown_category(self):
        with self.assertRaises(DocumentNotFoundError):
            self.repository.add_item('Missing', 'Item')

    def test_edit_item(self):
        self.repository.add_category('Bonds')
        item = self.repository.add_item('Bonds', 'RBI')
        other = self.repository.add_item('Bonds', 'NHAI')

        edited = self.repository.edit_item('Bonds', item['id'], 'RBI Floating')

        self.assertEqual(edited, {'id': item['id'], 'name': 'RBI Floating'})
        self.assertEqual(self.repository.get_catalog()['Bonds'], [edited, other])

    def test_edit_unknown_item(self):
        self.repository.add_category('Bonds')
        with self.assertRaises(DocumentNotFoundError):
            self.repository.edit_item('Bonds', 'missing', 'Name')

    def test_delete_item_and_category(self):
        self.repository.add_category('Bonds')
        self.repository.add_category('Funds')
        item = self.repository.add_item('Bonds', 'RBI')

        self.repository.delete_item('Bonds', item['id'])
        self.assertEqual(self.repository.get_catalog()['Bonds'], [])

        self.repository.delete_category('Bonds')
        self.repository.delete_category('Bonds')
        self.assertEqual(self.repository.get_catalog(), {'Funds': []})


class ProductMasterAPITests(BaseAPITestCase):
    """Test Product Master endpoints and screen permissions"""

    def test_admin_manages_catalog(self):
        self.authenticate(self.admin)

        response = self.client.post('/api/product-master/categories/', {'name': 'Bonds'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post('/api/product-master/categories/Bonds/items/', {'name': 'RBI'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item_id = response.data['id']

        response = self.client.patch(f'/api/product-master/categories/Bonds/items/{item_id}/',
                                     {'name': 'RBI 2030'}, format='json')
        self.assertEqual(response.data['name'], 'RBI 2030')

        response = self.client.get('/api/product-master/')
        self.assertEqual(response.data, {'Bonds': [{'id': item_id, 'name': 'RBI 2030'}]})

        response = self.client.delete(f'/api/product-master/categories/Bonds/items/{item_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.delete('/api/product-master/categories/Bonds/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get('/api/product-master/').data, {})

    def test_duplicate_category_message(self):
        self.authenticate(self.admin)
        self.client.post('/api/product-master/categories/', {'name': 'Bonds'}, format='json')
        response = self.client.post('/api/product-master/categories/', {'name': 'Bonds'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'message': 'Category already exists.'})

    def test_blank_category_rejected(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/product-master/categories/', {'name': '   '}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['errors'])

    def test_employee_reads_catalog_for_entry_forms(self):
        ProductCatalogRepository(store=self.store).add_category('Bonds')
        self.authenticate(self.reader)

        response = self.client.get('/api/product-master/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Bonds', response.data)

    def test_employee_cannot_change_catalog(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/product-master/categories/', {'name': 'Bonds'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_category_not_found(self):
        self.authenticate(self.admin)
        response = self.client.get('/api/product-master/categories/Missing/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
