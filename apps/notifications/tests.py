# apps/notifications/tests.py
"""
Notifications app tests - reminder emails
"""
from unittest import mock

from django.core import mail
from django.test import override_settings
from rest_framework import status

from apps.clients.repositories import ClientRepository
from apps.core.testing import BaseAPITestCase

URL = '/api/notifications/send-email/'


@override_settings(NOTIFICATION_EMAIL_FROM='office@example.com')
class SendEmailAPITests(BaseAPITestCase):
    """Test the reminder email endpoint"""

    def setUp(self):
        super().setUp()
        repository = ClientRepository(store=self.store)
        self.with_email = repository.create({'name': 'Ravi', 'familyName': 'Shah', 'email': 'ravi@example.com'})
        self.without_email = repository.create({'name': 'Anil', 'email': ''})

    def test_sends_one_email_per_client(self):
        other = ClientRepository(store=self.store).create({'name': 'Meera', 'email': 'meera@example.com'})
        self.authenticate(self.admin)

        response = self.client.post(URL, {'clientIds': [self.with_email, other, self.without_email]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'message': 'Emails sent successfully!'})
        self.assertEqual(sorted(message.to[0] for message in mail.outbox), ['meera@example.com', 'ravi@example.com'])
        self.assertEqual(mail.outbox[0].from_email, 'office@example.com')
        self.assertIn('PI0001', mail.outbox[0].body)

    def test_missing_client_ids(self):
        self.authenticate(self.admin)
        for payload in [{}, {'clientIds': []}]:
            response = self.client.post(URL, payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data, {'error': 'No clients provided.'})
        self.assertEqual(mail.outbox, [])

    def test_user_credentials_are_refused(self):
        self.authenticate(self.admin)
        response = self.client.post(URL, {
            'clientIds': [self.with_email],
            'userEmail': 'me@gmail.com',
            'userPassword': 'secret',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertEqual(mail.outbox, [])

    def test_no_recipient_has_email(self):
        self.authenticate(self.admin)
        response = self.client.post(URL, {'clientIds': [self.without_email, 'unknown']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_relay_failure(self):
        self.authenticate(self.admin)
        with mock.patch('apps.notifications.services.send_mass_mail', side_effect=ConnectionRefusedError('down')):
            response = self.client.post(URL, {'clientIds': [self.with_email]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Failed to send email.'})

    def test_admin_only(self):
        self.authenticate(self.writer)
        response = self.client.post(URL, {'clientIds': [self.with_email]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(mail.outbox, [])
