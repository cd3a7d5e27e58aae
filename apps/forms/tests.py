# apps/forms/tests.py
"""
Forms app tests - step gating, submit and edit sessions
"""
from django.test import SimpleTestCase
from rest_framework import status

from apps.clients.repositories import ClientRepository
from apps.core.exceptions import FormStateError
from apps.core.testing import BaseAPITestCase
from apps.core.wizard import FormDefinition, FormStep, MultiStepForm, at_least_one, required, required_if
from apps.entries.repositories import MediclaimRepository


def two_step_form(saved):
    def save(fields, edit_target_id):
        saved.append((fields, edit_target_id))
        return edit_target_id or 'new-id'

    return FormDefinition(
        name='sample',
        screen='Client Management',
        steps=[
            FormStep('First', fields=('name', 'married', 'spouse'),
                     validators=(required('name'), required_if('spouse', 'married', 'Yes'))),
            FormStep('Second', fields=('city', 'pin'), validators=(at_least_one('city', 'pin'),)),
        ],
        save=save,
        load=lambda record_id: {'id': record_id, 'name': 'Loaded'} if record_id == 'known' else None,
    )


class MultiStepFormTests(SimpleTestCase):
    """Test the step state machine"""

    def setUp(self):
        self.saved = []
        self.definition = two_step_form(self.saved)

    def test_next_stays_on_invalid_step(self):
        form = MultiStepForm.start(self.definition)

        self.assertFalse(form.next({'married': 'Yes'}))
        self.assertEqual(form.step, 1)
        self.assertEqual(set(form.errors), {'name', 'spouse'})

        self.assertTrue(form.next({'name': 'Ravi', 'spouse': 'Meera'}))
        self.assertEqual(form.step, 2)
        self.assertEqual(form.errors, {})

    def test_back_never_validates(self):
        form = MultiStepForm.start(self.definition)
        form.next({'name': 'Ravi'})
        form.back()
        form.back()
        self.assertEqual(form.step, 1)
        self.assertEqual(form.fields['name'], 'Ravi')

    def test_submit_only_from_last_step(self):
        form = MultiStepForm.start(self.definition)
        with self.assertRaises(FormStateError):
            form.submit({'name': 'Ravi', 'city': 'Pune'})
        self.assertEqual(self.saved, [])

    def test_submit_revalidates_every_step(self):
        form = MultiStepForm.start(self.definition)
        form.next({'name': 'Ravi'})
        form.fields['name'] = ''

        self.assertIsNone(form.submit({'city': 'Pune'}))
        self.assertIn('name', form.errors)
        self.assertEqual(self.saved, [])

    def test_submit_saves_and_closes(self):
        form = MultiStepForm.start(self.definition)
        form.next({'name': 'Ravi'})

        self.assertEqual(form.submit({'pin': '411001'}), 'new-id')
        self.assertEqual(self.saved, [({'name': 'Ravi', 'pin': '411001'}, None)])
        self.assertTrue(form.closed)
        with self.assertRaises(FormStateError):
            form.next({})

    def test_edit_session_is_seeded(self):
        form = MultiStepForm.start(self.definition, edit_target_id='known')
        self.assertEqual(form.fields, {'name': 'Loaded'})

        form.next()
        form.submit({'city': 'Pune'})
        self.assertEqual(self.saved[0][1], 'known')

    def test_state_round_trip(self):
        form = MultiStepForm.start(self.definition)
        form.next({'name': 'Ravi'})

        restored = MultiStepForm.from_state(self.definition, form.to_state())
        self.assertEqual(restored.step, 2)
        self.assertEqual(restored.to_state()['stepTitle'], 'Second')


class FormSessionAPITests(BaseAPITestCase):
    """Test form session endpoints"""

    def start(self, form, **data):
        response = self.client.post(f'/api/forms/{form}/start/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data['sessionId']

    def test_client_form_creates_client(self):
        self.authenticate(self.writer)
        session = self.start('client')

        response = self.client.post(f'/api/forms/client/{session}/next/', {'fields': {'name': 'Ravi'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('familyName', response.data['errors'])
        self.assertEqual(response.data['state']['step'], 1)

        response = self.client.post(f'/api/forms/client/{session}/next/', {'fields': {
            'familyName': 'Shah', 'dob': '1980-04-12', 'number': '9820000000',
        }}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['state']['step'], 2)

        response = self.client.post(f'/api/forms/client/{session}/submit/', {'fields': {'city': 'Mumbai'}},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        client = ClientRepository(store=self.store).get(response.data['recordId'])
        self.assertEqual(client['clientNumber'], 'PI0001')
        self.assertEqual(client['city'], 'Mumbai')

        # The session is gone once submitted
        response = self.client.get(f'/api/forms/client/{session}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_edit_session_updates_record(self):
        client_id = ClientRepository(store=self.store).create({
            'name': 'Ravi', 'familyName': 'Shah', 'dob': '1980-04-12', 'number': '9820000000',
        })
        self.authenticate(self.admin)
        session = self.start('client', editTargetId=client_id)

        state = self.client.get(f'/api/forms/client/{session}/').data['state']
        self.assertEqual(state['fields']['name'], 'Ravi')
        self.assertEqual(state['editTargetId'], client_id)

        self.client.post(f'/api/forms/client/{session}/next/', {'fields': {'name': 'Ravi K'}}, format='json')
        response = self.client.post(f'/api/forms/client/{session}/submit/', {}, format='json')

        self.assertEqual(response.data['recordId'], client_id)
        self.assertEqual(ClientRepository(store=self.store).get(client_id)['name'], 'Ravi K')

    def test_edit_unknown_record(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/forms/client/start/', {'editTargetId': 'missing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_failed_save_keeps_session(self):
        self.authenticate(self.writer)
        session = self.start('mediclaim-single')
        self.client.post(f'/api/forms/mediclaim-single/{session}/next/', {'fields': {
            'fullName': 'Ravi Shah', 'dob': '1980-04-12', 'clientId': 'missing-client',
        }}, format='json')
        self.client.post(f'/api/forms/mediclaim-single/{session}/next/', {}, format='json')

        response = self.client.post(f'/api/forms/mediclaim-single/{session}/submit/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(MediclaimRepository(store=self.store).list(), [])

        state = self.client.get(f'/api/forms/mediclaim-single/{session}/').data['state']
        self.assertEqual(state['step'], 3)
        self.assertEqual(state['fields']['clientId'], 'missing-client')

        response = self.client.post(f'/api/forms/mediclaim-single/{session}/submit/',
                                    {'fields': {'clientId': ''}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        entry = MediclaimRepository(store=self.store).get(response.data['recordId'])
        self.assertEqual(entry['type'], 'Single')
        self.assertEqual(entry['data']['fullName'], 'Ravi Shah')

    def test_back_and_cancel(self):
        self.authenticate(self.admin)
        session = self.start('fd')

        response = self.client.post(f'/api/forms/fd/{session}/back/', {}, format='json')
        self.assertEqual(response.data['state']['step'], 1)

        response = self.client.post(f'/api/forms/fd/{session}/cancel/', {}, format='json')
        self.assertTrue(response.data['state']['closed'])
        self.assertEqual(self.client.get(f'/api/forms/fd/{session}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_fd_form_is_admin_only(self):
        self.authenticate(self.writer)
        response = self.client.post('/api/forms/fd/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reader_cannot_start(self):
        self.authenticate(self.reader)
        response = self.client.post('/api/forms/client/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sessions_are_per_owner(self):
        self.authenticate(self.writer)
        session = self.start('client')

        self.authenticate(self.admin)
        self.assertEqual(self.client.get(f'/api/forms/client/{session}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_form(self):
        self.authenticate(self.admin)
        response = self.client.post('/api/forms/payroll/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
