"""
URL configuration: every API route lives under /api/, docs under /swagger/.
"""
from django.urls import path, include, re_path
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

schema_view = get_schema_view(openapi.Info(
        title="Office Back-Office API",
        default_version='v1',
        description="Clients, employees, entries, masters and exports",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Swagger documentation
    re_path(r'^swagger(?P<format>\.json|\.yaml)$',
            schema_view.without_ui(cache_timeout=0),
            name='schema-json'),
    re_path(r'^swagger/$',
            schema_view.with_ui('swagger', cache_timeout=0),
            name='schema-swagger-ui'),
    re_path(r'^redoc/$',
            schema_view.with_ui('redoc', cache_timeout=0),
            name='schema-redoc'),

    # API endpoints
    path('api/', include('apps.users.urls')),
    path('api/', include('apps.clients.urls')),
    path('api/', include('apps.catalog.urls')),
    path('api/', include('apps.locations.urls')),
    path('api/', include('apps.entries.urls')),
    path('api/', include('apps.forms.urls')),
    path('api/', include('apps.dashboard.urls')),
    path('api/', include('apps.notifications.urls')),
]
