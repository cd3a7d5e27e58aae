# apps/core/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.core.backends import get_document_store
from apps.core.mixins import ExportMixin, SearchFilterMixin, StreamMixin
from apps.core.pagination import StaticPagination
from apps.core.permissions import ScreenPermission

logger = logging.getLogger(__name__)


class DocumentViewSet(SearchFilterMixin, ExportMixin, StreamMixin, viewsets.GenericViewSet):
    """
    CRUD over one document collection through its repository.

    Endpoints:
    - GET    /<resource>/           list (search, filter, ordering, pagination)
    - POST   /<resource>/           create
    - GET    /<resource>/{id}/      retrieve
    - PUT    /<resource>/{id}/      update (merge)
    - PATCH  /<resource>/{id}/      partial update (merge)
    - DELETE /<resource>/{id}/      delete (idempotent)
    - GET    /<resource>/export/    spreadsheet / PDF export
    - GET    /<resource>/stream/    live updates (server-sent events)
    """
    repository_class = None
    permission_classes = [ScreenPermission]
    pagination_class = StaticPagination
    lookup_value_regex = '[^/]+'
    screen = None
    read_screens = ()

    def get_repository(self):
        return self.repository_class(store=get_document_store())

    def get_records(self):
        return self.get_repository().list()

    def render_records(self, records):
        """Hook to add derived display fields before records leave the API"""
        return records

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['existing'] = getattr(self, 'existing_record', None)
        return context

    def get_filtered_records(self):
        return self.filter_records(self.render_records(self.get_records()))

    def list(self, request):
        records = self.get_filtered_records()
        page = self.paginate_queryset(records)
        if page is not None:
            return self.get_paginated_response(page)
        return Response(records)

    def retrieve(self, request, pk=None):
        record = self.get_repository().retrieve(pk)
        return Response(self.render_records([record])[0])

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record_id = self.perform_create(serializer.validated_data)
        record = self.get_repository().retrieve(record_id)
        return Response(self.render_records([record])[0], status=status.HTTP_201_CREATED)

    def perform_create(self, data):
        return self.get_repository().create(data)

    def update(self, request, pk=None, partial=False):
        repository = self.get_repository()
        self.existing_record = repository.retrieve(pk)
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(pk, serializer.validated_data)
        return Response(self.render_records([repository.retrieve(pk)])[0])

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def perform_update(self, record_id, data):
        self.get_repository().update(record_id, data)

    def destroy(self, request, pk=None):
        self.perform_destroy(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def perform_destroy(self, record_id):
        self.get_repository().remove(record_id)
