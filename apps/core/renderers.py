# apps/core/renderers.py
"""
Renderers for non-JSON responses.
They only take part in content negotiation; error payloads fall back to JSON.
"""
from rest_framework.renderers import BaseRenderer, JSONRenderer


class _BinaryRenderer(BaseRenderer):
    charset = None
    render_style = 'binary'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if isinstance(data, (bytes, bytearray)):
            return data
        return JSONRenderer().render(data, accepted_media_type, renderer_context)


class SpreadsheetRenderer(_BinaryRenderer):
    media_type = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    format = 'xlsx'


class PDFRenderer(_BinaryRenderer):
    media_type = 'application/pdf'
    format = 'pdf'


class EventStreamRenderer(_BinaryRenderer):
    media_type = 'text/event-stream'
    format = 'sse'
