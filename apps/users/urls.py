from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import EmployeeViewSet, MeView, ProfilePhotoView, ProfileView, SignInView

router = DefaultRouter()
router.register(r'employees', EmployeeViewSet, basename='employees')

urlpatterns = [
    path('me/', MeView.as_view(), name='me'),
    path('auth/sign-in/', SignInView.as_view(), name='sign-in'),
    path('profile/', ProfileView.as_view(), name='profile'),
    path('profile/photo/', ProfilePhotoView.as_view(), name='profile-photo'),
    path('', include(router.urls)),
]
