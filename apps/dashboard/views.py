# apps/dashboard/views.py
"""
Dashboard summary: record counts shown on the landing screen
"""
import logging

from rest_framework.response import Response
from rest_framework.views import APIView

from apps.clients.repositories import ClientRepository
from apps.core.backends import get_document_store
from apps.core.permissions import ScreenPermission
from apps.entries.repositories import FDEntryRepository, MediclaimRepository
from apps.users import roles
from apps.users.repositories import EmployeeRepository

logger = logging.getLogger(__name__)


class DashboardSummaryView(APIView):
    """
    GET /api/dashboard/summary/

    Totals of clients, family members, FD and mediclaim entries. The
    employee total only counts the accounts created by the signed-in Admin
    and is null for employees.
    """
    permission_classes = [ScreenPermission]
    screen = roles.DASHBOARD

    def get(self, request):
        store = get_document_store()
        clients = ClientRepository(store=store).list()

        total_employees = None
        if request.user.role == roles.ROLE_ADMIN:
            total_employees = EmployeeRepository(store=store, where={'createdBy': request.user.uid}).count()

        summary = {
            'totalClients': len(clients),
            'totalFamilyMembers': sum(len(client.get('familyMembers') or []) for client in clients),
            'totalEmployees': total_employees,
            'totalFdEntries': FDEntryRepository(store=store).count(),
            'totalMediclaimEntries': MediclaimRepository(store=store).count(),
        }
        logger.info(f"Dashboard summary computed for {request.user.uid}")
        return Response(summary)
