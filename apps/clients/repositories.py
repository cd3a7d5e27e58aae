# apps/clients/repositories.py
import logging

from django.utils import timezone

from apps.clients.codes import CLIENTS_COLLECTION, generate_client_code
from apps.core.repositories import DocumentRepository
from apps.core.store import ArrayUnion, sort_key

logger = logging.getLogger(__name__)


def client_display(record):
    """'name (clientNumber)' as shown in dropdowns and entry tables"""
    if not record:
        return ''
    return f"{record.get('name', '')} ({record.get('clientNumber', '')})"


class ClientRepository(DocumentRepository):
    """
    Clients, listed by clientNumber.

    clientNumber comes from the code generator on create and can never be
    written afterwards; family members are only appended through
    add_family_member.
    """
    collection = CLIENTS_COLLECTION
    readonly_fields = ('id', 'clientNumber', 'familyMembers', 'profilePicturePath')

    def list(self):
        records = super().list()
        records.sort(key=lambda record: sort_key(record.get('clientNumber', '')))
        return records

    def subscribe(self, on_change, on_error=None):
        def _sorted(records):
            on_change(sorted(records, key=lambda record: sort_key(record.get('clientNumber', ''))))

        return super().subscribe(_sorted, on_error)

    def create(self, record):
        data = self.prepare(record)
        data.setdefault('familyMembers', [])
        client_id, _ = generate_client_code(self.store, data)
        return client_id

    def add_family_member(self, client_id, member):
        """Append a family member (array union: an identical member is not added twice)"""
        self.store.update_document(self.collection, client_id, {'familyMembers': ArrayUnion([member])})
        logger.info(f"Added family member to client {client_id}")

    def set_profile_picture(self, client_id, path):
        self.store.update_document(self.collection, client_id, {
            'profilePicturePath': path,
            'profilePictureUpdatedAt': timezone.now(),
        })

    def family_members(self):
        """Every family member across clients, tagged with its client"""
        members = []
        for client in self.list():
            for index, member in enumerate(client.get('familyMembers') or [], start=1):
                members.append({
                    **member,
                    'clientId': client['id'],
                    'clientCode': client.get('clientNumber', ''),
                    'clientName': client.get('name', ''),
                    'position': index,
                })
        return members

    def display_names(self, client_ids):
        """clientId -> 'name (code)' for the given ids; unknown ids are left out"""
        names = {}
        for client_id in {client_id for client_id in client_ids if client_id}:
            record = self.get(client_id)
            if record is not None:
                names[client_id] = client_display(record)
        return names

