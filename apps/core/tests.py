# apps/core/tests.py
"""
Core app tests - document store, repositories, filtering, permissions,
error format and live streams
"""
import importlib
import json
import os
import subprocess
import sys
from types import SimpleNamespace
from unittest import mock

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings
from google.auth.credentials import AnonymousCredentials
from google.cloud import firestore
from rest_framework import status
from rest_framework.exceptions import ValidationError

from apps.core.backends import get_document_store, reset_backends
from apps.core.exceptions import (
    DocumentNotFoundError,
    IdentityProviderError,
    TransactionConflictError,
    custom_exception_handler,
)
from apps.core.permissions import IsAdmin, ScreenPermission
from apps.core.repositories import DocumentRepository, distinct_values, filter_records, sort_records
from apps.core.serializers import OptionalFloatField
from apps.core.sse_views import event_stream
from apps.core.store import ArrayUnion, FirestoreDocumentStore, InMemoryDocumentStore
from apps.users.identity import Identity
from apps.users.roles import (
    DASHBOARD,
    FD_ENTRY,
    PERMISSION_ALL,
    PERMISSION_READ,
    PERMISSION_WRITE,
    PHONE_LOG_BOOK,
    ROLE_ADMIN,
    ROLE_EMPLOYEE,
)


class NoteRepository(DocumentRepository):
    collection = 'notes'
    order_by = 'title'


class InMemoryDocumentStoreTests(SimpleTestCase):
    """Test the in-process document store"""

    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_add_and_get(self):
        doc_id = self.store.add_document('notes', {'title': 'a'})
        self.assertEqual(self.store.get_document('notes', doc_id), {'title': 'a'})
        self.assertIsNone(self.store.get_document('notes', 'missing'))

    def test_returned_documents_are_copies(self):
        doc_id = self.store.add_document('notes', {'tags': ['a']})
        self.store.get_document('notes', doc_id)['tags'].append('b')
        self.assertEqual(self.store.get_document('notes', doc_id), {'tags': ['a']})

    def test_where_and_order_by(self):
        for title, kind in [('c', 'x'), ('a', 'x'), ('b', 'y')]:
            self.store.add_document('notes', {'title': title, 'kind': kind})
        self.store.add_document('notes', {'kind': 'x'})

        documents = self.store.list_documents('notes', where={'kind': 'x'}, order_by='-title')
        self.assertEqual([document.data['title'] for document in documents], ['c', 'a'])

    def test_set_document_merge(self):
        self.store.set_document('notes', 'n1', {'title': 'a', 'meta': {'x': 1}})
        self.store.set_document('notes', 'n1', {'meta': {'y': 2}}, merge=True)
        self.assertEqual(self.store.get_document('notes', 'n1'), {'title': 'a', 'meta': {'x': 1, 'y': 2}})

        self.store.set_document('notes', 'n1', {'title': 'b'})
        self.assertEqual(self.store.get_document('notes', 'n1'), {'title': 'b'})

    def test_update_missing_document(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update_document('notes', 'missing', {'title': 'a'})

    def test_array_union(self):
        self.store.set_document('notes', 'n1', {'items': [{'name': 'a'}]})
        self.store.update_document('notes', 'n1', {'items': ArrayUnion([{'name': 'a'}, {'name': 'b'}])})
        self.store.update_document('notes', 'n1', {'items': ArrayUnion([{'name': 'b'}])})
        self.assertEqual(self.store.get_document('notes', 'n1')['items'], [{'name': 'a'}, {'name': 'b'}])

    def test_delete_is_idempotent(self):
        self.store.set_document('notes', 'n1', {'title': 'a'})
        self.store.delete_document('notes', 'n1')
        self.store.delete_document('notes', 'n1')
        self.assertIsNone(self.store.get_document('notes', 'n1'))

    def test_subscribe_delivers_snapshots(self):
        snapshots = []
        unsubscribe = self.store.subscribe('notes', lambda documents: snapshots.append(
            [document.data['title'] for document in documents]
        ), order_by='title')

        self.store.add_document('notes', {'title': 'b'})
        self.store.add_document('notes', {'title': 'a'})
        self.store.add_document('other', {'title': 'ignored'})
        unsubscribe()
        unsubscribe()
        self.store.add_document('notes', {'title': 'c'})

        self.assertEqual(snapshots, [[], ['b'], ['a', 'b']])

    def test_listener_errors_go_to_on_error(self):
        errors = []

        def failing(documents):
            raise ValueError('boom')

        self.store.subscribe('notes', failing, on_error=errors.append)
        self.assertEqual([str(error) for error in errors], ['boom'])

    def test_transaction_commits_writes(self):
        def increment(transaction):
            current = transaction.get('metadata', 'counter') or {'count': 0}
            transaction.set('metadata', 'counter', {'count': current['count'] + 1})
            return current['count'] + 1

        self.assertEqual(self.store.run_transaction(increment), 1)
        self.assertEqual(self.store.run_transaction(increment), 2)
        self.assertEqual(self.store.get_document('metadata', 'counter'), {'count': 2})

    def test_transaction_conflict_exhausts_retries(self):
        calls = []

        def conflicting(transaction):
            calls.append(1)
            transaction.get('metadata', 'counter')
            self.store.set_document('metadata', 'counter', {'count': len(calls)})
            transaction.set('metadata', 'counter', {'count': -1})

        with self.assertRaises(TransactionConflictError):
            self.store.run_transaction(conflicting, max_attempts=3)

        self.assertEqual(len(calls), 3)
        self.assertEqual(self.store.get_document('metadata', 'counter'), {'count': 3})


class DocumentRepositoryTests(SimpleTestCase):
    """Test the generic repository"""

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.repository = NoteRepository(store=self.store)

    def test_create_strips_readonly_fields(self):
        record_id = self.repository.create({'id': 'forged', 'title': 'a'})
        self.assertNotEqual(record_id, 'forged')
        self.assertEqual(self.repository.get(record_id), {'id': record_id, 'title': 'a'})

    def test_partial_update_merges(self):
        record_id = self.repository.create({'title': 'a', 'body': 'text'})
        self.repository.update(record_id, {'body': 'changed'})
        self.assertEqual(self.repository.get(record_id), {'id': record_id, 'title': 'a', 'body': 'changed'})

    def test_update_missing_record(self):
        with self.assertRaises(DocumentNotFoundError):
            self.repository.update('missing', {'title': 'a'})
        with self.assertRaises(DocumentNotFoundError):
            self.repository.update('missing', {})

    def test_remove_is_idempotent(self):
        record_id = self.repository.create({'title': 'a'})
        self.repository.remove(record_id)
        self.repository.remove(record_id)
        self.assertIsNone(self.repository.get(record_id))

    def test_where_scopes_reads_and_writes(self):
        mine = NoteRepository(store=self.store, where={'owner': 'u1'})
        theirs = NoteRepository(store=self.store, where={'owner': 'u2'})
        record_id = mine.create({'title': 'a', 'owner': 'u2'})

        self.assertEqual(mine.get(record_id)['owner'], 'u1')
        self.assertIsNone(theirs.get(record_id))
        self.assertEqual(theirs.count(), 0)
        with self.assertRaises(DocumentNotFoundError):
            theirs.update(record_id, {'title': 'b'})
        with self.assertRaises(DocumentNotFoundError):
            theirs.remove(record_id)

    def test_subscribe_normalizes_records(self):
        snapshots = []
        self.repository.create({'title': 'b'})
        unsubscribe = self.repository.subscribe(snapshots.append)
        self.repository.create({'title': 'a'})
        unsubscribe()

        self.assertEqual([record['title'] for record in snapshots[-1]], ['a', 'b'])
        self.assertIn('id', snapshots[-1][0])


class RecordFilterTests(SimpleTestCase):
    """Test in-memory search, filters and ordering"""

    records = [
        {'id': '1', 'name': 'Ravi Shah', 'city': 'Mumbai', 'amount': 10},
        {'id': '2', 'name': 'Anil Rao', 'city': 'Pune', 'amount': 5},
        {'id': '3', 'name': 'Meera Shah', 'city': 'Mumbai'},
    ]

    def ids(self, records):
        return [record['id'] for record in records]

    def test_search_is_case_insensitive(self):
        self.assertEqual(self.ids(filter_records(self.records, search='SHAH', search_fields=['name'])), ['1', '3'])

    def test_equals(self):
        self.assertEqual(self.ids(filter_records(self.records, equals={'city': ['Pune']})), ['2'])
        self.assertEqual(self.ids(filter_records(self.records, equals={'city': ''})), ['1', '2', '3'])

    def test_sort_puts_missing_values_last(self):
        self.assertEqual(self.ids(sort_records(self.records, 'amount')), ['2', '1', '3'])
        self.assertEqual(self.ids(sort_records(self.records, '-amount')), ['1', '2', '3'])

    def test_distinct_values(self):
        self.assertEqual(distinct_values(self.records, 'city'), ['Mumbai', 'Pune'])


class ScreenPermissionTests(SimpleTestCase):
    """Test the server-side navigation gate"""

    def identity(self, role, permission):
        return Identity('uid', 'someone@example.com', role=role, permission=permission)

    def check(self, identity, method, screen, **view_attrs):
        request = SimpleNamespace(user=identity, method=method)
        view = SimpleNamespace(screen=screen, **view_attrs)
        return ScreenPermission().has_permission(request, view)

    def test_reads_follow_navigation(self):
        employee = self.identity(ROLE_EMPLOYEE, PERMISSION_READ)
        self.assertTrue(self.check(employee, 'GET', DASHBOARD))
        self.assertFalse(self.check(employee, 'GET', FD_ENTRY))
        self.assertTrue(self.check(self.identity(ROLE_ADMIN, PERMISSION_ALL), 'GET', FD_ENTRY))

    def test_writes_need_mutating_permission(self):
        self.assertFalse(self.check(self.identity(ROLE_EMPLOYEE, PERMISSION_READ), 'POST', PHONE_LOG_BOOK))
        self.assertFalse(self.check(self.identity(ROLE_EMPLOYEE, None), 'DELETE', PHONE_LOG_BOOK))
        self.assertTrue(self.check(self.identity(ROLE_EMPLOYEE, PERMISSION_WRITE), 'POST', PHONE_LOG_BOOK))

    def test_read_screens_and_read_actions(self):
        employee = self.identity(ROLE_EMPLOYEE, PERMISSION_READ)
        self.assertTrue(self.check(employee, 'GET', FD_ENTRY, read_screens=(PHONE_LOG_BOOK,)))
        self.assertFalse(self.check(employee, 'POST', FD_ENTRY, read_screens=(PHONE_LOG_BOOK,)))
        self.assertTrue(self.check(employee, 'POST', PHONE_LOG_BOOK, action='preview', read_actions=('preview',)))

    def test_anonymous_is_refused(self):
        anonymous = SimpleNamespace(is_authenticated=False)
        self.assertFalse(self.check(anonymous, 'GET', DASHBOARD))
        self.assertFalse(IsAdmin().has_permission(SimpleNamespace(user=anonymous), None))

    def test_is_admin(self):
        self.assertTrue(IsAdmin().has_permission(
            SimpleNamespace(user=self.identity(ROLE_ADMIN, PERMISSION_ALL)), None))
        self.assertFalse(IsAdmin().has_permission(
            SimpleNamespace(user=self.identity(ROLE_EMPLOYEE, PERMISSION_ALL)), None))


class ExceptionHandlerTests(SimpleTestCase):
    """Test the {message} error format"""

    def test_validation_errors_keep_field_map(self):
        response = custom_exception_handler(ValidationError({'name': ['This field is required.']}), {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {
            'message': 'This field is required.',
            'errors': {'name': ['This field is required.']},
        })

    def test_custom_exceptions(self):
        response = custom_exception_handler(TransactionConflictError(), {})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(set(response.data), {'message'})

    def test_identity_reason_messages(self):
        response = custom_exception_handler(IdentityProviderError('EMAIL_EXISTS'), {})
        self.assertEqual(response.data, {'message': 'An account with this email already exists.'})

    def test_unhandled_exceptions_pass_through(self):
        self.assertIsNone(custom_exception_handler(ValueError('boom'), {}))


class OptionalFloatFieldTests(SimpleTestCase):

    def test_blank_is_none(self):
        field = OptionalFloatField()
        self.assertIsNone(field.run_validation(''))
        self.assertIsNone(field.run_validation(None))
        self.assertEqual(field.run_validation('6.5'), 6.5)


class EventStreamTests(SimpleTestCase):
    """Test server-sent snapshots of a live collection"""

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.repository = NoteRepository(store=self.store)

    def read(self, stream):
        chunk = next(stream)
        self.assertTrue(chunk.startswith('data: '))
        return json.loads(chunk[len('data: '):])

    def test_snapshots_and_unsubscribe(self):
        self.repository.create({'title': 'a'})
        stream = event_stream(self.repository, keepalive_seconds=0.01)

        self.assertEqual(self.read(stream)['event'], 'connected')
        self.assertEqual([record['title'] for record in self.read(stream)['records']], ['a'])

        self.repository.create({'title': 'b'})
        self.assertEqual([record['title'] for record in self.read(stream)['records']], ['a', 'b'])

        self.assertEqual(self.read(stream)['event'], 'ping')

        stream.close()
        self.assertEqual(self.store._listeners, [])

    def test_render_records_is_applied(self):
        stream = event_stream(self.repository, render_records=lambda records: [{'count': len(records)}])
        self.read(stream)
        self.assertEqual(self.read(stream)['records'], [{'count': 0}])
        stream.close()


class BackendTests(SimpleTestCase):

    def tearDown(self):
        reset_backends()

    def test_backend_is_cached_until_reset(self):
        store = get_document_store()
        self.assertIs(get_document_store(), store)
        reset_backends()
        self.assertIsNot(get_document_store(), store)

    def test_setting_change_resets_backend(self):
        store = get_document_store()
        with override_settings(DOCUMENT_STORE_BACKEND='apps.core.store.InMemoryDocumentStore'):
            self.assertIsNot(get_document_store(), store)


class FirestoreDocumentIdTests(SimpleTestCase):
    """Ids that are not a single path segment name no document"""

    def setUp(self):
        client = firestore.Client(project='office-tests', credentials=AnonymousCredentials())
        self.store = FirestoreDocumentStore(client=client)

    def test_read_is_missing(self):
        self.assertIsNone(self.store.get_document('clients', 'a/b'))
        self.assertIsNone(self.store.get_document('clients', '..'))

    def test_update_is_not_found(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update_document('clients', 'a/b', {'name': 'Ravi'})

    def test_delete_is_noop(self):
        self.store.delete_document('clients', 'a/b/c')


class ProductionSettingsTests(SimpleTestCase):
    """Production reads its shared cache from CACHE_URL"""

    def load(self, environ):
        with mock.patch.dict(os.environ, environ, clear=True), mock.patch.dict(sys.modules):
            sys.modules.pop('config.settings.base', None)
            sys.modules.pop('config.settings.production', None)
            return importlib.import_module('config.settings.production')

    def test_cache_url(self):
        production = self.load({'CACHE_URL': 'dbcache://form_sessions'})
        self.assertEqual(production.CACHES['default']['BACKEND'], 'django.core.cache.backends.db.DatabaseCache')
        self.assertEqual(production.CACHES['default']['LOCATION'], 'form_sessions')

    def test_cache_url_is_required(self):
        with self.assertRaises(ImproperlyConfigured):
            self.load({})


class EntryPointImportTests(SimpleTestCase):
    """Modules load in a fresh interpreter whichever is imported first"""

    def run_fresh(self, code):
        return subprocess.run(
            [sys.executable, '-c', f'import django; django.setup(); {code}'],
            cwd=settings.BASE_DIR,
            env={**os.environ, 'DJANGO_SETTINGS_MODULE': 'config.settings.test'},
            capture_output=True,
            text=True,
            timeout=120,
        )

    def test_exceptions_before_views(self):
        result = self.run_fresh('import apps.core.exceptions; import rest_framework.views; import config.urls')
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_views_before_exceptions(self):
        result = self.run_fresh('import rest_framework.views; import apps.core.exceptions; import config.urls')
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_seed_clients_command(self):
        result = self.run_fresh(
            "from django.core.management import call_command; call_command('seed_clients', count=2)"
        )
        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertIn('Successfully created 2 clients', result.stdout)
