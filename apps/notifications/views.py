# apps/notifications/views.py
"""
Notification Management: reminder emails to selected clients
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import NotificationDeliveryError
from apps.core.permissions import ScreenPermission
from apps.notifications.serializers import SendEmailSerializer
from apps.notifications.services import NoRecipientsError, NotificationService
from apps.users.roles import NOTIFICATION_MANAGEMENT

CREDENTIAL_FIELDS = ('userEmail', 'userPassword')


class SendEmailView(APIView):
    """
    POST /api/notifications/send-email/ {clientIds}

    Mail goes out with the server's own credential; requests carrying
    userEmail / userPassword are refused. Errors are reported as {error}.
    """
    permission_classes = [ScreenPermission]
    screen = NOTIFICATION_MANAGEMENT

    def post(self, request):
        if any(field in request.data for field in CREDENTIAL_FIELDS):
            return Response({'error': 'Mail credentials are configured on the server and must not be sent.'},
                            status=status.HTTP_400_BAD_REQUEST)

        serializer = SendEmailSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'error': 'No clients provided.'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            NotificationService().send_reminders(serializer.validated_data['clientIds'])
        except NoRecipientsError:
            return Response({'error': 'None of the selected clients has an email address.'},
                            status=status.HTTP_400_BAD_REQUEST)
        except NotificationDeliveryError:
            return Response({'error': 'Failed to send email.'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({'message': 'Emails sent successfully!'})
