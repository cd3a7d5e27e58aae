# apps/clients/views.py
import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response
from reportlab.lib.units import mm

from apps.clients.repositories import ClientRepository
from apps.clients.serializers import (
    ClientSerializer,
    FamilyMemberSerializer,
    ProfilePictureSerializer,
    RunsheetSerializer,
)
from apps.core.backends import get_object_storage
from apps.core.exceptions import StorageOperationError
from apps.core.mixins import ExportMixin, SearchFilterMixin
from apps.core.pagination import StaticPagination
from apps.core.permissions import ScreenPermission
from apps.core.renderers import PDFRenderer
from apps.core.repositories import distinct_values
from apps.core.views import DocumentViewSet
from apps.exports.formatters import PDF_CONTENT_TYPE, to_pdf
from apps.users import roles

logger = logging.getLogger(__name__)

# Screens whose forms pick clients from a dropdown
CLIENT_READ_SCREENS = (
    roles.FAMILY_MANAGEMENT,
    roles.POSTAL_ENTRY,
    roles.FD_ENTRY,
    roles.INSURANCE_ENTRY,
    roles.MEDICLAIM_ENTRY,
    roles.NOTIFICATION_MANAGEMENT,
)

FILTER_FIELDS = ['city', 'location', 'area', 'state']

RUNSHEET_COLUMNS = ['NO', 'Name & Address', 'Pick Up & Delivery', 'Remarks & Signs']
RUNSHEET_COL_WIDTHS = [10 * mm, 60 * mm, 60 * mm, 50 * mm]


class ClientViewSet(DocumentViewSet):
    """
    ViewSet for managing clients.

    Permissions:
        - Read: Client Management (and the screens picking clients)
        - Write: Client Management with write/all permission
        - Runsheet: Runsheet Entry (Admin)

    Endpoints:
        - GET /api/clients/ - List clients (search, ?city= ?location= ?area= ?state=)
        - POST /api/clients/ - Create a client (code assigned by the counter)
        - GET/PUT/PATCH/DELETE /api/clients/{id}/
        - GET/POST /api/clients/{id}/family-members/ - List / append family members
        - POST /api/clients/{id}/profile-picture/ - Replace the profile picture
        - GET /api/clients/filters/ - Distinct city / location / area / state values
        - POST /api/clients/runsheet/ - Runsheet PDF for selected clients
        - GET /api/clients/export/ - Export
        - GET /api/clients/stream/ - Live updates
    """
    repository_class = ClientRepository
    serializer_class = ClientSerializer
    read_actions = ('runsheet',)
    search_fields = ['name', 'familyName', 'clientNumber', 'number', 'email']
    filterset_fields = FILTER_FIELDS + ['maritalStatus']
    ordering_fields = ['name', 'clientNumber', 'city', 'dob']
    export_title = 'Clients'
    export_exclude = ('id', 'profilePicturePath', 'profilePictureUrl', 'profilePictureUpdatedAt')

    @property
    def screen(self):
        if getattr(self, 'action', None) == 'runsheet':
            return roles.RUNSHEET_ENTRY
        return roles.CLIENT_MANAGEMENT

    @property
    def read_screens(self):
        if getattr(self, 'action', None) == 'runsheet':
            return ()
        return CLIENT_READ_SCREENS

    def get_serializer_class(self):
        if self.action == 'family_members':
            return FamilyMemberSerializer
        if self.action == 'profile_picture':
            return ProfilePictureSerializer
        if self.action == 'runsheet':
            return RunsheetSerializer
        return ClientSerializer

    def render_records(self, records):
        storage = get_object_storage()
        rendered = []
        for record in records:
            path = record.get('profilePicturePath')
            rendered.append({**record, 'profilePictureUrl': storage.url(path) if path else ''})
        return rendered

    def perform_destroy(self, record_id):
        repository = self.get_repository()
        record = repository.get(record_id)
        repository.remove(record_id)
        path = (record or {}).get('profilePicturePath')
        if path:
            try:
                get_object_storage().delete(path)
            except StorageOperationError:
                logger.warning(f"Could not delete profile picture {path} of client {record_id}")

    @action(detail=True, methods=['get', 'post'], url_path='family-members')
    def family_members(self, request, pk=None):
        """
        GET  - Family members of the client, in insertion order
        POST - Append one family member
        """
        repository = self.get_repository()
        client = repository.retrieve(pk)

        if request.method == 'GET':
            return Response(client.get('familyMembers') or [])

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        repository.add_family_member(pk, serializer.validated_data)
        members = repository.retrieve(pk).get('familyMembers') or []
        return Response(members, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='profile-picture',
            parser_classes=[MultiPartParser, FormParser])
    def profile_picture(self, request, pk=None):
        """Store the picture at clientProfiles/{id}/profileImage_{timestamp}, then drop the previous one"""
        repository = self.get_repository()
        client = repository.retrieve(pk)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        picture = serializer.validated_data['picture']

        storage = get_object_storage()
        path = f"clientProfiles/{pk}/profileImage_{int(timezone.now().timestamp() * 1000)}"
        storage.upload(path, picture.read(), content_type=picture.content_type)
        repository.set_profile_picture(pk, path)

        previous = client.get('profilePicturePath')
        if previous and previous != path:
            try:
                storage.delete(previous)
            except StorageOperationError:
                logger.warning(f"Could not delete previous picture {previous} of client {pk}")

        logger.info(f"Profile picture of client {pk} replaced")
        return Response(self.render_records([repository.retrieve(pk)])[0])

    @action(detail=False, methods=['get'])
    def filters(self, request):
        """Distinct values for the list's filter dropdowns"""
        records = self.get_records()
        return Response({field: distinct_values(records, field) for field in FILTER_FIELDS})

    @action(detail=False, methods=['post'], parser_classes=[JSONParser],
            renderer_classes=[JSONRenderer, PDFRenderer])
    def runsheet(self, request):
        """
        Runsheet PDF: one row per selected client with its address block and
        the pick up / delivery note typed for it.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        notes = data.get('pickupDelivery') or {}

        repository = self.get_repository()
        rows = []
        for number, client_id in enumerate(data['clientIds'], start=1):
            client = repository.get(client_id)
            if client is None:
                raise ValidationError({'clientIds': [f'Unknown client: {client_id}']})
            rows.append({
                'NO': number,
                'Name & Address': '\n'.join([
                    client.get('name', ''),
                    client.get('city', ''),
                    client.get('location') or 'N/A',
                ]),
                'Pick Up & Delivery': notes.get(client_id, ''),
                'Remarks & Signs': '',
            })

        content = to_pdf(
            rows,
            title='Runsheet',
            header_fields={'Name': data.get('name', ''), 'Date': data.get('date', '')},
            columns=RUNSHEET_COLUMNS,
            col_widths=RUNSHEET_COL_WIDTHS,
        )
        response = HttpResponse(content, content_type=PDF_CONTENT_TYPE)
        response['Content-Disposition'] = 'attachment; filename="runsheet.pdf"'
        return response


class FamilyMemberViewSet(SearchFilterMixin, ExportMixin, viewsets.GenericViewSet):
    """
    Family Management: every family member across clients, tagged with
    clientId / clientCode / clientName.

    Endpoints:
        - GET /api/family-members/ - List (search, ?relation= ?clientId=, ordering)
        - GET /api/family-members/export/ - Export
    """
    permission_classes = [ScreenPermission]
    pagination_class = StaticPagination
    screen = roles.FAMILY_MANAGEMENT
    serializer_class = FamilyMemberSerializer
    search_fields = ['name', 'clientName', 'clientCode', 'relation']
    filterset_fields = ['relation', 'clientId']
    ordering_fields = ['name', 'clientCode', 'clientName', 'relation', 'dob']
    export_title = 'Family Members'
    export_exclude = ('clientId', 'position')

    def get_filtered_records(self):
        return self.filter_records(ClientRepository().family_members())

    def list(self, request):
        records = self.get_filtered_records()
        page = self.paginate_queryset(records)
        if page is not None:
            return self.get_paginated_response(page)
        return Response(records)
