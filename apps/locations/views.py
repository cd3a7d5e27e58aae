# apps/locations/views.py
from apps.core.views import DocumentViewSet
from apps.locations.repositories import AreaRepository, LocationRepository
from apps.locations.serializers import NamedPlaceSerializer
from apps.users import roles


class PlaceViewSet(DocumentViewSet):
    """
    Location & Area Master. Client Management reads the lists to fill its
    location / area dropdowns.

    Endpoints (per resource):
        - GET/POST /api/<resource>/
        - GET/PUT/PATCH/DELETE /api/<resource>/{id}/
        - GET /api/<resource>/export/
        - GET /api/<resource>/stream/
    """
    screen = roles.LOCATION_AREA_MASTER
    read_screens = (roles.CLIENT_MANAGEMENT,)
    serializer_class = NamedPlaceSerializer
    search_fields = ['name']
    ordering_fields = ['name']


class LocationViewSet(PlaceViewSet):
    repository_class = LocationRepository
    export_title = 'Locations'


class AreaViewSet(PlaceViewSet):
    repository_class = AreaRepository
    export_title = 'Areas'
