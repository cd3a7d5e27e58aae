from django.urls import path
from apps.notifications.views import SendEmailView

urlpatterns = [
    path('notifications/send-email/', SendEmailView.as_view(), name='send-email'),
]
