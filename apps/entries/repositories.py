# apps/entries/repositories.py
"""
Repositories of the transactional entry collections.

Entries reference clients by document id; `resolve_clients` adds the
"name (clientNumber)" display strings when records are rendered.
"""
import logging

from django.utils import timezone

from apps.clients.repositories import ClientRepository
from apps.core.repositories import DocumentRepository

logger = logging.getLogger(__name__)


class EntryRepository(DocumentRepository):
    """
    Base for entry collections.

    client_fields: fields holding client ids, each rendered into a
    `<prefix>Display` field (clientId -> clientDisplay).
    timestamps: stamp createdAt / updatedAt on writes.
    """
    client_fields = ('clientId',)
    timestamps = False
    readonly_fields = ('id', 'createdAt', 'updatedAt')

    def create(self, record):
        if not self.timestamps:
            return super().create(record)
        now = timezone.now()
        data = {**self.prepare(record), 'createdAt': now, 'updatedAt': now}
        record_id = self.store.add_document(self.collection, data)
        logger.info(f"Created {self.collection}/{record_id}")
        return record_id

    def update(self, record_id, partial):
        data = self.prepare(partial)
        if self.timestamps and data:
            self.store.update_document(self.collection, record_id, {**data, 'updatedAt': timezone.now()})
            logger.info(f"Updated {self.collection}/{record_id}: {sorted(data)}")
            return
        super().update(record_id, data)

    @staticmethod
    def display_field(field):
        return f"{field[:-2] if field.endswith('Id') else field}Display"

    def resolve_clients(self, records):
        ids = {record.get(field) for record in records for field in self.client_fields}
        names = ClientRepository(store=self.store).display_names(ids)
        return [
            {**record, **{self.display_field(field): names.get(record.get(field), '') for field in self.client_fields}}
            for record in records
        ]


class FDEntryRepository(EntryRepository):
    collection = 'fdEntries'
    client_fields = ('clientId', 'secondClientId')


class InsuranceRepository(EntryRepository):
    collection = 'insurances'


class MediclaimRepository(EntryRepository):
    """Entries of type Single or Family with the policy payload nested under `data`"""
    collection = 'mediclaim'


class PostalEntryRepository(EntryRepository):
    collection = 'postalEntries'
    client_fields = ('clientId', 'secondClientId')
    timestamps = True


class PhoneLogRepository(EntryRepository):
    collection = 'phoneLogs'
    client_fields = ()


class ChequeRepository(EntryRepository):
    collection = 'cheques'
    client_fields = ()
    order_by = 'dueDate'


class ExecutiveRepository(EntryRepository):
    """Staff roster (`employees`), distinct from the signed-in employee accounts"""
    collection = 'employees'
    client_fields = ()
    order_by = 'name'
