# apps/clients/codes.py
"""
Sequential client code generator.

The counter document `metadata/clientsCounter` holds the number of codes
handed out so far. Reading it, bumping it and creating the client happen in
one store transaction, so concurrent creations never share a code.
"""
import logging

from django.conf import settings

logger = logging.getLogger(__name__)

COUNTER_COLLECTION = 'metadata'
COUNTER_DOCUMENT = 'clientsCounter'
CLIENTS_COLLECTION = 'clients'


def format_client_code(number, prefix=None, width=None):
    """PI + zero padded number; numbers wider than `width` are kept whole"""
    prefix = settings.CLIENT_CODE_PREFIX if prefix is None else prefix
    width = settings.CLIENT_CODE_WIDTH if width is None else width
    return f'{prefix}{str(number).zfill(width)}'


def generate_client_code(store, client_fields, prefix=None, width=None, max_attempts=None):
    """
    Create a client document with the next client code.

    Args:
        store: document store
        client_fields: client data (any clientNumber given is overwritten)

    Returns:
        (client_id, client_number)

    Raises:
        TransactionConflictError: the counter kept changing under every attempt;
            nothing was written
    """
    def create_with_next_code(transaction):
        counter = transaction.get(COUNTER_COLLECTION, COUNTER_DOCUMENT) or {}
        next_count = (counter.get('count') or 0) + 1
        client_number = format_client_code(next_count, prefix, width)

        transaction.set(COUNTER_COLLECTION, COUNTER_DOCUMENT, {'count': next_count})
        client_id = transaction.create(CLIENTS_COLLECTION, {**client_fields, 'clientNumber': client_number})
        return client_id, client_number

    client_id, client_number = store.run_transaction(create_with_next_code, max_attempts=max_attempts)
    logger.info(f"Client {client_id} assigned code {client_number}")
    return client_id, client_number
