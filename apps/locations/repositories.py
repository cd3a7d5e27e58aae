# apps/locations/repositories.py
from apps.core.repositories import DocumentRepository


class LocationRepository(DocumentRepository):
    collection = 'locations'
    order_by = 'name'


class AreaRepository(DocumentRepository):
    collection = 'areas'
    order_by = 'name'
