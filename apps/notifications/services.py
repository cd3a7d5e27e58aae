# apps/notifications/services.py
"""
Service layer for client reminder emails
"""
import logging

from django.conf import settings
from django.core.mail import send_mass_mail

from apps.clients.repositories import ClientRepository
from apps.core.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


class NoRecipientsError(Exception):
    """None of the selected clients has an email address"""


class NotificationService:
    """
    Sends reminder emails to clients with the server-side mail credential
    (Django's EMAIL_* settings).
    """

    def __init__(self, repository=None):
        self.repository = repository or ClientRepository()

    def recipients(self, client_ids):
        """(client, email) pairs for the selected clients that have an email address"""
        found = []
        for client_id in dict.fromkeys(client_ids):
            client = self.repository.get(client_id)
            if client is None:
                logger.warning(f"Reminder skipped: client {client_id} does not exist")
                continue
            email = (client.get('email') or '').strip()
            if email:
                found.append((client, email))
        return found

    def build_message(self, client):
        name = ' '.join(part for part in (client.get('name'), client.get('familyName')) if part)
        code = client.get('clientNumber', '')
        body = (
            f"Dear {name or 'Client'},\n\n"
            f"This is a reminder regarding your account {code} with us. "
            f"Please get in touch with the office for any pending formalities.\n\n"
            f"Regards,\n{settings.NOTIFICATION_EMAIL_FROM}"
        )
        return settings.NOTIFICATION_EMAIL_SUBJECT, body

    def send_reminders(self, client_ids):
        """Send one reminder per client; returns the number of emails sent"""
        recipients = self.recipients(client_ids)
        if not recipients:
            raise NoRecipientsError()

        messages = []
        for client, email in recipients:
            subject, body = self.build_message(client)
            messages.append((subject, body, settings.NOTIFICATION_EMAIL_FROM, [email]))

        try:
            sent = send_mass_mail(messages, fail_silently=False)
        except OSError as e:
            logger.error(f"Error sending reminder emails: {e}")
            raise NotificationDeliveryError()

        logger.info(f"Sent {sent} reminder email(s) for {len(client_ids)} selected client(s)")
        return sent
