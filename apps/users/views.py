# apps/users/views.py
"""
Access, employee management and profile views.
"""
import logging

from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.backends import get_document_store, get_identity_provider
from apps.core.views import DocumentViewSet
from apps.users import roles
from apps.users.repositories import EmployeeRepository
from apps.users.serializers import (
    EmployeeCreateSerializer,
    EmployeeSerializer,
    ProfilePhotoSerializer,
    ProfileSerializer,
    SignInSerializer,
)
from apps.users.services import EmployeeService, ProfileService

logger = logging.getLogger(__name__)


class EmployeeViewSet(DocumentViewSet):
    """
    ViewSet for managing employee accounts of the signed-in Admin.

    Permissions:
        - Admin only (Employee screen)

    Endpoints:
        - GET /api/employees/ - List employees created by the current Admin
        - POST /api/employees/ - Create account + profile
        - GET /api/employees/{uid}/ - Retrieve employee
        - PATCH /api/employees/{uid}/ - Update name, dob or permission
        - DELETE /api/employees/{uid}/ - Delete profile and account
        - GET /api/employees/export/ - Export
        - GET /api/employees/stream/ - Live updates
    """
    screen = roles.EMPLOYEE
    repository_class = EmployeeRepository
    search_fields = ['name', 'email']
    filterset_fields = ['permission']
    ordering_fields = ['name', 'email', 'createdAt']
    ordering = 'name'
    export_title = 'Employees'

    def get_repository(self):
        return EmployeeRepository(store=get_document_store(), where={'createdBy': self.request.user.uid})

    def get_serializer_class(self):
        if self.action == 'create':
            return EmployeeCreateSerializer
        return EmployeeSerializer

    def perform_create(self, data):
        return EmployeeService.create_employee(self.request.user, data)

    def perform_destroy(self, record_id):
        EmployeeService.delete_employee(self.request.user, record_id)


class MeView(APIView):
    """
    GET /api/me/ - Identity of the caller with the navigation and action
    flags composed for its role and permission level.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        identity = request.user
        view = roles.compose_view(identity.role, identity.permission)
        view['user'] = {
            'uid': identity.uid,
            'email': identity.email,
            'displayName': identity.display_name,
            'photoURL': identity.photo_url,
        }
        return Response(view)


class SignInView(APIView):
    """POST /api/auth/sign-in/ - Email/password sign-in returning the provider's ID token"""
    authentication_classes = []
    permission_classes = [AllowAny]
    serializer_class = SignInSerializer

    def post(self, request):
        serializer = SignInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = get_identity_provider().sign_in(
            serializer.validated_data['email'],
            serializer.validated_data['password'],
        )
        logger.info(f"Signed in {tokens['email']}")
        return Response(tokens)


class ProfileView(APIView):
    """
    GET /api/profile/ - Account profile
    PATCH /api/profile/ - Update the display name
    """
    permission_classes = [IsAuthenticated]
    serializer_class = ProfileSerializer

    def get(self, request):
        return Response(ProfileService.get_profile(request.user))

    def patch(self, request):
        serializer = ProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ProfileService.update_display_name(request.user, serializer.validated_data['displayName'])
        return Response(ProfileService.get_profile(request.user))


class ProfilePhotoView(APIView):
    """POST /api/profile/photo/ - Upload a new account photo (multipart field `photo`)"""
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]
    serializer_class = ProfilePhotoSerializer

    def post(self, request):
        serializer = ProfilePhotoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        photo = serializer.validated_data['photo']
        url = ProfileService.upload_photo(request.user, photo.read(), photo.content_type)
        return Response({'message': 'Profile photo updated.', 'photoURL': url}, status=status.HTTP_200_OK)
