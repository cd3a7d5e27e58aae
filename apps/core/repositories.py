# apps/core/repositories.py
"""
Generic entity repository.

A repository wraps one collection of the document store: it normalizes
documents into plain records (`{'id': ..., **fields}`), forwards live
subscriptions and performs create/update/delete. Repositories keep no local
state, so a failed write leaves nothing to revert.
"""
import logging

from apps.core.backends import get_document_store
from apps.core.exceptions import DocumentNotFoundError
from apps.core.store import sort_key

logger = logging.getLogger(__name__)


class DocumentRepository:
    """
    Base repository, instantiated per collection.

    Subclasses set `collection` and optionally `order_by` and
    `readonly_fields`. A `where` mapping scopes every read and write to the
    matching documents (e.g. employees of one admin).
    """
    collection = None
    order_by = None
    readonly_fields = ('id',)
    where = None

    def __init__(self, store=None, where=None):
        self.store = store if store is not None else get_document_store()
        if where is not None:
            self.where = where

    def normalize(self, doc_id, data):
        return {'id': doc_id, **data}

    def _in_scope(self, data):
        return not self.where or all(data.get(field) == value for field, value in self.where.items())

    def prepare(self, data):
        """Drop fields clients may not write"""
        return {field: value for field, value in data.items() if field not in self.readonly_fields}

    def subscribe(self, on_change, on_error=None):
        """Forward live query snapshots as normalized records; returns unsubscribe()"""
        def _on_change(documents):
            on_change([self.normalize(document.id, document.data) for document in documents])

        return self.store.subscribe(
            self.collection, _on_change, on_error=on_error, where=self.where, order_by=self.order_by
        )

    def list(self):
        documents = self.store.list_documents(self.collection, where=self.where, order_by=self.order_by)
        return [self.normalize(document.id, document.data) for document in documents]

    def get(self, record_id):
        data = self.store.get_document(self.collection, record_id)
        if data is None or not self._in_scope(data):
            return None
        return self.normalize(record_id, data)

    def retrieve(self, record_id):
        record = self.get(record_id)
        if record is None:
            raise DocumentNotFoundError()
        return record

    def create(self, record):
        data = self.prepare(record)
        if self.where:
            data.update(self.where)
        record_id = self.store.add_document(self.collection, data)
        logger.info(f"Created {self.collection}/{record_id}")
        return record_id

    def update(self, record_id, partial):
        """Merge `partial` into the record; keys not given are left untouched"""
        if self.where:
            self.retrieve(record_id)
        data = self.prepare(partial)
        if not data:
            self.retrieve(record_id)
            return
        self.store.update_document(self.collection, record_id, data)
        logger.info(f"Updated {self.collection}/{record_id}: {sorted(data)}")

    def remove(self, record_id):
        """Delete the record. Removing a missing record is a no-op."""
        if self.where:
            data = self.store.get_document(self.collection, record_id)
            if data is not None and not self._in_scope(data):
                raise DocumentNotFoundError()
        self.store.delete_document(self.collection, record_id)
        logger.info(f"Removed {self.collection}/{record_id}")

    def count(self):
        return len(self.store.list_documents(self.collection, where=self.where))


def _matches_search(record, search, search_fields):
    needle = search.strip().lower()
    return any(needle in str(record.get(field) or '').lower() for field in search_fields)


def _matches_value(value, expected):
    if isinstance(expected, (list, tuple, set)):
        return str(value) in {str(item) for item in expected}
    return str(value) == str(expected)


def filter_records(records, search=None, search_fields=(), equals=None):
    """
    Filter in-memory records.

    search: case-insensitive substring matched against `search_fields`
    equals: field -> value (or list of accepted values); blank values are ignored
    """
    if search and search.strip():
        records = [record for record in records if _matches_search(record, search, search_fields)]
    for field, expected in (equals or {}).items():
        if expected in (None, '', [], ()):
            continue
        records = [record for record in records if _matches_value(record.get(field), expected)]
    return records


def sort_records(records, ordering):
    """Sort by `ordering` ('field' or '-field'); records without the field go last"""
    field = ordering.lstrip('-')
    present = [record for record in records if record.get(field) not in (None, '')]
    missing = [record for record in records if record.get(field) in (None, '')]
    present.sort(key=lambda record: sort_key(record[field]), reverse=ordering.startswith('-'))
    return present + missing


def distinct_values(records, field):
    """Sorted distinct non-blank values of a field"""
    return sorted({str(record[field]) for record in records if record.get(field) not in (None, '')})


