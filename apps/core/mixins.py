# apps/core/mixins.py
"""
Reusable mixins for ViewSets to reduce code duplication.
These mixins provide common functionality across different ViewSets.
"""
from django.http import HttpResponse
from django.utils.text import slugify
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.renderers import JSONRenderer

from apps.core.renderers import EventStreamRenderer, PDFRenderer, SpreadsheetRenderer
from apps.core.repositories import filter_records, sort_records
from apps.core.sse_views import stream_response
from apps.exports.formatters import PDF_CONTENT_TYPE, SPREADSHEET_CONTENT_TYPE, to_pdf, to_spreadsheet


class SearchFilterMixin:
    """
    Provides searching, equality filtering and ordering over in-memory records.

    ?search=      substring match on `search_fields`
    ?<field>=     equality on `filterset_fields` (repeat the param to accept several values)
    ?ordering=    one of `ordering_fields`, '-' prefix for descending
    """
    search_fields = []
    filterset_fields = []
    # query param -> record field, for params that cannot share the field name
    filter_aliases = {}
    ordering_fields = []
    ordering = None

    def filter_records(self, records):
        params = self.request.query_params
        equals = {
            self.filter_aliases.get(param, param): params.getlist(param)
            for param in self.filterset_fields if params.getlist(param)
        }
        records = filter_records(
            records,
            search=params.get('search'),
            search_fields=self.search_fields,
            equals=equals,
        )

        ordering = params.get('ordering')
        if ordering and ordering.lstrip('-') in self.ordering_fields:
            records = sort_records(records, ordering)
        elif self.ordering:
            records = sort_records(records, self.ordering)
        return records


class ExportMixin:
    """
    Adds GET <resource>/export/?type=xlsx|pdf exporting the filtered list.
    PDF exports accept optional ?name= and ?date= printed under the letterhead.
    """
    export_title = None
    export_columns = None
    export_col_widths = None
    export_exclude = ('id',)

    def get_export_records(self):
        records = self.get_filtered_records()
        return [
            {key: value for key, value in record.items() if key not in self.export_exclude}
            for record in records
        ]

    def get_export_header_fields(self):
        params = self.request.query_params
        if 'name' in params or 'date' in params:
            return {'Name': params.get('name', ''), 'Date': params.get('date', '')}
        return None

    @action(detail=False, methods=['get'],
            renderer_classes=[JSONRenderer, SpreadsheetRenderer, PDFRenderer])
    def export(self, request):
        export_type = request.query_params.get('type', 'xlsx').lower()
        title = self.export_title or self.screen or 'Export'
        records = self.get_export_records()

        if export_type == 'xlsx':
            content = to_spreadsheet(records, sheet_name=title, columns=self.export_columns)
            content_type = SPREADSHEET_CONTENT_TYPE
        elif export_type == 'pdf':
            content = to_pdf(
                records,
                title=title,
                header_fields=self.get_export_header_fields(),
                columns=self.export_columns,
                col_widths=self.export_col_widths,
            )
            content_type = PDF_CONTENT_TYPE
        else:
            raise ValidationError({'type': ['Unsupported export type. Use xlsx or pdf.']})

        response = HttpResponse(content, content_type=content_type)
        response['Content-Disposition'] = f'attachment; filename="{slugify(title) or "export"}.{export_type}"'
        return response


class StreamMixin:
    """Adds GET <resource>/stream/: server-sent snapshots of the live collection"""

    @action(detail=False, methods=['get'], renderer_classes=[EventStreamRenderer, JSONRenderer])
    def stream(self, request):
        return stream_response(self.get_repository(), self.render_records)
