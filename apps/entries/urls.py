from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    ChequeViewSet,
    ExecutiveViewSet,
    FDEntryViewSet,
    InsuranceViewSet,
    MediclaimViewSet,
    PhoneLogViewSet,
    PostalEntryViewSet,
)

router = DefaultRouter()
router.register(r'fd-entries', FDEntryViewSet, basename='fd-entries')
router.register(r'insurances', InsuranceViewSet, basename='insurances')
router.register(r'mediclaim', MediclaimViewSet, basename='mediclaim')
router.register(r'postal-entries', PostalEntryViewSet, basename='postal-entries')
router.register(r'phone-logs', PhoneLogViewSet, basename='phone-logs')
router.register(r'cheques', ChequeViewSet, basename='cheques')
router.register(r'executives', ExecutiveViewSet, basename='executives')

urlpatterns = [
    path('', include(router.urls)),
]
