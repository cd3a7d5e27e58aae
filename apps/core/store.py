# apps/core/store.py
"""
Document store adapters.

Every repository talks to the hosted document database through the small
interface below: collection queries and live subscriptions, single document
reads and writes, and read-then-write transactions that retry on conflict.

Two adapters are provided:
- FirestoreDocumentStore: Cloud Firestore through firebase-admin (production)
- InMemoryDocumentStore: thread-safe in-process store (tests and local runs)
"""
import copy
import logging
import threading
import uuid
from collections import namedtuple
from contextlib import contextmanager
from datetime import date, datetime

from django.conf import settings
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from apps.core.exceptions import (
    DocumentNotFoundError,
    StoreOperationError,
    TransactionConflictError,
)
from apps.core.firebase import get_firebase_app

logger = logging.getLogger(__name__)


Document = namedtuple('Document', ['id', 'data'])


class ArrayUnion:
    """Field value that appends the given items to an array field, skipping ones already present"""

    def __init__(self, values):
        self.values = list(values)

    def __repr__(self):
        return f'ArrayUnion({self.values!r})'


def _max_attempts(max_attempts):
    return max_attempts or getattr(settings, 'STORE_TRANSACTION_MAX_ATTEMPTS', 5)


class DocumentStore:
    """
    Interface implemented by every document store adapter.

    `where` is a mapping of field -> value equality constraints and
    `order_by` a field name, prefixed with '-' for descending order.
    Documents lacking the `order_by` field are left out of ordered results.
    """

    def list_documents(self, collection, where=None, order_by=None):
        """Return the matching documents as a list of Document(id, data)"""
        raise NotImplementedError

    def get_document(self, collection, doc_id):
        """Return the document data, or None when it does not exist"""
        raise NotImplementedError

    def add_document(self, collection, data):
        """Create a document with a store-assigned id and return the id"""
        raise NotImplementedError

    def set_document(self, collection, doc_id, data, merge=False):
        """Create or overwrite a document (deep-merged into the existing one when merge=True)"""
        raise NotImplementedError

    def update_document(self, collection, doc_id, data):
        """Overwrite the given top-level fields of an existing document"""
        raise NotImplementedError

    def delete_document(self, collection, doc_id):
        """Delete a document. Deleting a missing document succeeds."""
        raise NotImplementedError

    def subscribe(self, collection, on_change, on_error=None, where=None, order_by=None):
        """
        Open a live query. `on_change(documents)` fires once with the current
        contents and again after every change to the collection.

        Returns an idempotent `unsubscribe()` callable.
        """
        raise NotImplementedError

    def run_transaction(self, func, max_attempts=None):
        """
        Run `func(transaction)` atomically and return its result.

        `func` may be invoked several times when a concurrent write conflicts
        with the documents it read. After `max_attempts` conflicting attempts
        TransactionConflictError is raised and nothing is written.
        """
        raise NotImplementedError


# ---------------------------------------------------------------------------
# In-memory adapter
# ---------------------------------------------------------------------------

_TYPE_RANK = (
    (type(None), 0),
    (bool, 1),
    ((int, float), 2),
    ((datetime, date), 3),
    (str, 4),
)


def sort_key(value):
    for types, rank in _TYPE_RANK:
        if isinstance(value, types):
            return (rank, value)
    return (len(_TYPE_RANK), str(value))


def _deep_merge(target, changes):
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def _apply_field(current, value):
    if isinstance(value, ArrayUnion):
        items = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in items:
                items.append(copy.deepcopy(item))
        return items
    return copy.deepcopy(value)


class _Listener:

    def __init__(self, collection, on_change, on_error, where, order_by):
        self.collection = collection
        self.on_change = on_change
        self.on_error = on_error
        self.where = where
        self.order_by = order_by
        self.active = True


class InMemoryTransaction:
    """Transaction handle passed to `run_transaction` callbacks by InMemoryDocumentStore"""

    def __init__(self, store):
        self._store = store
        self._reads = {}
        self._writes = {}

    def get(self, collection, doc_id):
        key = (collection, doc_id)
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        self._reads.setdefault(key, self._store._versions.get(key, 0))
        data = self._store._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def set(self, collection, doc_id, data):
        self._writes[(collection, doc_id)] = copy.deepcopy(data)

    def create(self, collection, data):
        doc_id = self._store.new_document_id()
        self.set(collection, doc_id, data)
        return doc_id


class InMemoryDocumentStore(DocumentStore):
    """
    Document store kept in process memory.

    Transactions run serialized under the store lock and commit only if
    none of the documents they read changed meanwhile; a changed read set
    (for example a write issued from inside the callback) is a conflict and
    the callback is retried.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._collections = {}
        self._versions = {}
        self._listeners = []

    @staticmethod
    def new_document_id():
        return uuid.uuid4().hex[:20]

    # Reads

    def _query(self, collection, where=None, order_by=None):
        documents = []
        for doc_id in sorted(self._collections.get(collection, {})):
            data = self._collections[collection][doc_id]
            if where and any(data.get(field) != value for field, value in where.items()):
                continue
            documents.append(Document(doc_id, copy.deepcopy(data)))

        if order_by:
            field = order_by.lstrip('-')
            documents = [document for document in documents if field in document.data]
            documents.sort(key=lambda document: sort_key(document.data[field]),
                           reverse=order_by.startswith('-'))
        return documents

    def list_documents(self, collection, where=None, order_by=None):
        with self._lock:
            return self._query(collection, where, order_by)

    def get_document(self, collection, doc_id):
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    # Writes

    def _write(self, collection, doc_id, data):
        key = (collection, doc_id)
        documents = self._collections.setdefault(collection, {})
        if data is None:
            documents.pop(doc_id, None)
        else:
            documents[doc_id] = data
        self._versions[key] = self._versions.get(key, 0) + 1

    def add_document(self, collection, data):
        doc_id = self.new_document_id()
        self.set_document(collection, doc_id, data)
        return doc_id

    def set_document(self, collection, doc_id, data, merge=False):
        with self._lock:
            current = self._collections.get(collection, {}).get(doc_id)
            if merge and current is not None:
                new_data = _deep_merge(copy.deepcopy(current), copy.deepcopy(data))
            else:
                new_data = copy.deepcopy(data)
            self._write(collection, doc_id, new_data)
        self._notify({collection})

    def update_document(self, collection, doc_id, data):
        with self._lock:
            current = self._collections.get(collection, {}).get(doc_id)
            if current is None:
                raise DocumentNotFoundError()
            new_data = copy.deepcopy(current)
            for field, value in data.items():
                new_data[field] = _apply_field(new_data.get(field), value)
            self._write(collection, doc_id, new_data)
        self._notify({collection})

    def delete_document(self, collection, doc_id):
        with self._lock:
            if doc_id not in self._collections.get(collection, {}):
                return
            self._write(collection, doc_id, None)
        self._notify({collection})

    def run_transaction(self, func, max_attempts=None):
        attempts = _max_attempts(max_attempts)
        for attempt in range(1, attempts + 1):
            with self._lock:
                transaction = InMemoryTransaction(self)
                result = func(transaction)
                conflicted = any(
                    self._versions.get(key, 0) != version
                    for key, version in transaction._reads.items()
                )
                if not conflicted:
                    for (collection, doc_id), data in transaction._writes.items():
                        self._write(collection, doc_id, data)
                    changed = {collection for collection, _ in transaction._writes}
                    break
            logger.warning(f"Transaction conflict (attempt {attempt}/{attempts})")
        else:
            raise TransactionConflictError()

        self._notify(changed)
        return result

    # Subscriptions

    def subscribe(self, collection, on_change, on_error=None, where=None, order_by=None):
        listener = _Listener(collection, on_change, on_error, where, order_by)
        with self._lock:
            self._listeners.append(listener)
            documents = self._query(collection, where, order_by)
        self._deliver(listener, documents)

        def unsubscribe():
            with self._lock:
                listener.active = False
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, collections):
        with self._lock:
            pending = [
                (listener, self._query(listener.collection, listener.where, listener.order_by))
                for listener in self._listeners
                if listener.collection in collections
            ]
        for listener, documents in pending:
            self._deliver(listener, documents)

    def _deliver(self, listener, documents):
        if not listener.active:
            return
        try:
            listener.on_change(documents)
        except Exception as exc:
            if listener.on_error is None:
                logger.exception(f"Listener on '{listener.collection}' failed")
            else:
                listener.on_error(exc)


# ---------------------------------------------------------------------------
# Firestore adapter
# ---------------------------------------------------------------------------

@contextmanager
def _translate_errors(operation):
    try:
        yield
    except google_exceptions.NotFound as exc:
        logger.error(f"{operation} failed: {exc}")
        raise DocumentNotFoundError() from exc
    except google_exceptions.GoogleAPICallError as exc:
        logger.error(f"{operation} failed: {exc}")
        raise StoreOperationError() from exc


def _valid_document_id(doc_id):
    """Firestore ids are single path segments; anything else names no document"""
    return isinstance(doc_id, str) and doc_id not in ('', '.', '..') and '/' not in doc_id


class FirestoreTransaction:
    """Transaction handle passed to `run_transaction` callbacks by FirestoreDocumentStore"""

    def __init__(self, client, transaction):
        self._client = client
        self._transaction = transaction

    def get(self, collection, doc_id):
        if not _valid_document_id(doc_id):
            return None
        snapshot = self._client.collection(collection).document(doc_id).get(transaction=self._transaction)
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, collection, doc_id, data):
        self._transaction.set(self._client.collection(collection).document(doc_id), data)

    def create(self, collection, data):
        reference = self._client.collection(collection).document()
        self._transaction.set(reference, data)
        return reference.id


class FirestoreDocumentStore(DocumentStore):
    """Cloud Firestore through the firebase-admin SDK"""

    def __init__(self, client=None):
        if client is None:
            client = firestore.client(app=get_firebase_app())
        self._client = client

    def _query(self, collection, where=None, order_by=None):
        query = self._client.collection(collection)
        for field, value in (where or {}).items():
            query = query.where(filter=FieldFilter(field, '==', value))
        if order_by:
            direction = firestore.Query.DESCENDING if order_by.startswith('-') else firestore.Query.ASCENDING
            query = query.order_by(order_by.lstrip('-'), direction=direction)
        return query

    @staticmethod
    def _to_firestore(data):
        return {
            field: firestore.ArrayUnion(value.values) if isinstance(value, ArrayUnion) else value
            for field, value in data.items()
        }

    def list_documents(self, collection, where=None, order_by=None):
        with _translate_errors(f"Listing '{collection}'"):
            return [
                Document(snapshot.id, snapshot.to_dict())
                for snapshot in self._query(collection, where, order_by).stream()
            ]

    def get_document(self, collection, doc_id):
        if not _valid_document_id(doc_id):
            return None
        with _translate_errors(f"Reading '{collection}/{doc_id}'"):
            snapshot = self._client.collection(collection).document(doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    def add_document(self, collection, data):
        with _translate_errors(f"Adding to '{collection}'"):
            _, reference = self._client.collection(collection).add(self._to_firestore(data))
        return reference.id

    def set_document(self, collection, doc_id, data, merge=False):
        with _translate_errors(f"Writing '{collection}/{doc_id}'"):
            self._client.collection(collection).document(doc_id).set(self._to_firestore(data), merge=merge)

    def update_document(self, collection, doc_id, data):
        if not _valid_document_id(doc_id):
            raise DocumentNotFoundError()
        with _translate_errors(f"Updating '{collection}/{doc_id}'"):
            self._client.collection(collection).document(doc_id).update(self._to_firestore(data))

    def delete_document(self, collection, doc_id):
        if not _valid_document_id(doc_id):
            return
        with _translate_errors(f"Deleting '{collection}/{doc_id}'"):
            self._client.collection(collection).document(doc_id).delete()

    def run_transaction(self, func, max_attempts=None):
        transaction = self._client.transaction(max_attempts=_max_attempts(max_attempts))

        @firestore.transactional
        def _run(firestore_transaction):
            return func(FirestoreTransaction(self._client, firestore_transaction))

        try:
            with _translate_errors('Transaction'):
                return _run(transaction)
        except ValueError as exc:
            # Raised by the SDK once its retry budget is spent
            if isinstance(exc.__cause__, google_exceptions.Aborted):
                logger.error(f"Transaction gave up after retries: {exc}")
                raise TransactionConflictError() from exc
            raise

    def subscribe(self, collection, on_change, on_error=None, where=None, order_by=None):
        def _on_snapshot(snapshots, changes, read_time):
            try:
                on_change([Document(snapshot.id, snapshot.to_dict()) for snapshot in snapshots])
            except Exception as exc:
                if on_error is None:
                    raise
                on_error(exc)

        with _translate_errors(f"Subscribing to '{collection}'"):
            watch = self._query(collection, where, order_by).on_snapshot(_on_snapshot)

        closed = threading.Event()

        def unsubscribe():
            if not closed.is_set():
                closed.set()
                watch.unsubscribe()

        return unsubscribe
