# apps/entries/views.py
"""
Transaction screens: FD, insurance, mediclaim, postal entries, phone log,
post office cheques and the executive roster.
"""
from apps.core.views import DocumentViewSet
from apps.entries.repositories import (
    ChequeRepository,
    ExecutiveRepository,
    FDEntryRepository,
    InsuranceRepository,
    MediclaimRepository,
    PhoneLogRepository,
    PostalEntryRepository,
)
from apps.entries.serializers import (
    ChequeSerializer,
    ExecutiveSerializer,
    FDEntrySerializer,
    InsuranceSerializer,
    MediclaimSerializer,
    PhoneLogSerializer,
    PostalEntrySerializer,
)
from apps.users import roles


class EntryViewSet(DocumentViewSet):
    """Entry collections; client ids are rendered as 'name (clientNumber)'"""
    export_exclude = ('id', 'clientId', 'secondClientId')

    def render_records(self, records):
        return self.get_repository().resolve_clients(records)


class FDEntryViewSet(EntryViewSet):
    """
    FD Entry (Admin).

    Endpoints:
        - GET/POST /api/fd-entries/
        - GET/PUT/PATCH/DELETE /api/fd-entries/{id}/
        - GET /api/fd-entries/export/ and /stream/
    """
    screen = roles.FD_ENTRY
    repository_class = FDEntryRepository
    serializer_class = FDEntrySerializer
    search_fields = ['clientDisplay', 'secondClientDisplay', 'product', 'cifId', 'bankName', 'chequeNumber']
    filterset_fields = ['product', 'bankName']
    ordering_fields = ['depositDate', 'maturityDate', 'amountDeposited', 'interestRate']
    export_title = 'FD Entries'


class InsuranceViewSet(EntryViewSet):
    """Insurance Entry: /api/insurances/"""
    screen = roles.INSURANCE_ENTRY
    repository_class = InsuranceRepository
    serializer_class = InsuranceSerializer
    search_fields = ['clientDisplay', 'product', 'plan', 'nomineeName', 'chequeNumber', 'bankName']
    filterset_fields = ['product', 'premiumMode']
    ordering_fields = ['policyDate', 'maturityDate', 'sumAssured', 'premiumAmount']
    export_title = 'Insurance Entries'


class MediclaimViewSet(EntryViewSet):
    """
    Mediclaim Entry: /api/mediclaim/ (?entryType=Single|Family; ?type= selects the export format).
    Exports lift the nested policy payload to top-level columns
    (Address_City, PolicyDetails_PolicyNumber, FamilyMembers_1_FullName, ...).
    """
    screen = roles.MEDICLAIM_ENTRY
    repository_class = MediclaimRepository
    serializer_class = MediclaimSerializer
    search_fields = ['holderName', 'clientDisplay', 'type']
    filterset_fields = ['entryType']
    filter_aliases = {'entryType': 'type'}
    ordering_fields = ['holderName', 'type']
    export_title = 'Mediclaim Entries'

    def render_records(self, records):
        rendered = super().render_records(records)
        for record in rendered:
            data = record.get('data') or {}
            record['holderName'] = data.get('fullName') or data.get('policyholderName') or ''
        return rendered

    def get_export_records(self):
        return [
            {'type': record.get('type', ''), 'clientDisplay': record.get('clientDisplay', ''),
             **(record.get('data') or {})}
            for record in self.get_filtered_records()
        ]


class PostalEntryViewSet(EntryViewSet):
    """Postal Entry: /api/postal-entries/, newest first"""
    screen = roles.POSTAL_ENTRY
    repository_class = PostalEntryRepository
    serializer_class = PostalEntrySerializer
    search_fields = ['clientDisplay', 'secondClientDisplay', 'cifId1', 'cifId2']
    filterset_fields = ['product', 'subProduct', 'postOfficeName']
    ordering_fields = ['createdAt', 'depositDate', 'maturityDate', 'amount']
    ordering = '-createdAt'
    export_title = 'Postal Entries'


class PhoneLogViewSet(EntryViewSet):
    """Phone Log Book: /api/phone-logs/"""
    screen = roles.PHONE_LOG_BOOK
    repository_class = PhoneLogRepository
    serializer_class = PhoneLogSerializer
    search_fields = ['employeeName', 'phoneNumber', 'taskDescription', 'employeeId']
    filterset_fields = ['employeeId']
    ordering_fields = ['employeeName']
    export_title = 'Phone Logs'
    export_exclude = ('id',)


class ChequeViewSet(EntryViewSet):
    """Post Office cheques: /api/cheques/, ordered by due date"""
    screen = roles.POST_OFFICE
    repository_class = ChequeRepository
    serializer_class = ChequeSerializer
    search_fields = ['rdChequeEntry', 'chequeFrom', 'chequeTo', 'bankName', 'dueDate']
    filterset_fields = ['bankName']
    ordering_fields = ['dueDate']
    export_title = 'Cheques'
    export_exclude = ('id',)


class ExecutiveViewSet(EntryViewSet):
    """Executive Master (Admin): /api/executives/, ordered by name"""
    screen = roles.EXECUTIVE_MASTER
    read_screens = (roles.PHONE_LOG_BOOK,)
    repository_class = ExecutiveRepository
    serializer_class = ExecutiveSerializer
    search_fields = ['name', 'employeeId', 'email']
    filterset_fields = ['designation']
    ordering_fields = ['name', 'employeeId', 'salary']
    export_title = 'Executives'
    export_exclude = ('id',)
