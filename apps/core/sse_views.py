# apps/core/sse_views.py
import json
import logging
import queue

from django.core.serializers.json import DjangoJSONEncoder
from django.http import StreamingHttpResponse
from django.utils import timezone

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15


def _event(payload):
    return f"data: {json.dumps(payload, cls=DjangoJSONEncoder)}\n\n"


def event_stream(repository, render_records=None, keepalive_seconds=KEEPALIVE_SECONDS):
    """
    Server-sent events for one repository's live query.

    Snapshots arrive on the store's listener thread and are handed over
    through a queue. The subscription is closed when the client disconnects.
    """
    updates = queue.Queue()
    unsubscribe = repository.subscribe(
        lambda records: updates.put(('snapshot', records)),
        lambda exc: updates.put(('error', str(exc))),
    )
    logger.info(f"SSE stream opened on '{repository.collection}'")

    try:
        yield _event({'event': 'connected', 'collection': repository.collection})

        while True:
            try:
                kind, payload = updates.get(timeout=keepalive_seconds)
            except queue.Empty:
                yield _event({'event': 'ping', 'timestamp': int(timezone.now().timestamp())})
                continue

            if kind == 'error':
                logger.error(f"Subscription on '{repository.collection}' failed: {payload}")
                yield _event({'event': 'error', 'message': payload})
                break

            records = render_records(payload) if render_records else payload
            yield _event({'event': 'snapshot', 'records': records})
    finally:
        unsubscribe()
        logger.info(f"SSE stream closed on '{repository.collection}'")


def stream_response(repository, render_records=None):
    response = StreamingHttpResponse(
        event_stream(repository, render_records),
        content_type='text/event-stream'
    )
    response['Cache-Control'] = 'no-cache, no-transform'
    response['X-Accel-Buffering'] = 'no'
    return response
