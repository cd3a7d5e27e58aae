# apps/forms/views.py
"""
Server-side multi-step form sessions.

A session is opened on a named form (client, fd, insurance, postal,
mediclaim-single, mediclaim-family), optionally seeded from an existing
record, and then driven step by step until it is submitted or cancelled.
"""
import logging

from rest_framework import status, viewsets
from rest_framework.exceptions import APIException
from rest_framework.response import Response

from apps.core.permissions import ScreenPermission
from apps.core.wizard import FormSessionStore, MultiStepForm
from apps.forms.registry import get_form_definition
from apps.forms.serializers import FormFieldsSerializer, FormStartSerializer

logger = logging.getLogger(__name__)

INVALID_STEP_MESSAGE = 'Please correct the highlighted fields.'


class FormSessionViewSet(viewsets.ViewSet):
    """
    ViewSet driving multi-step forms.

    Permissions:
        - The form's screen; every transition needs write/all permission

    Endpoints:
        - POST /api/forms/{form}/start/ - Open a session ({editTargetId} to edit a record)
        - GET /api/forms/{form}/{session}/ - Current state
        - POST /api/forms/{form}/{session}/next/ - Validate the step and advance
        - POST /api/forms/{form}/{session}/back/ - Previous step
        - POST /api/forms/{form}/{session}/submit/ - Validate every step and save
        - POST /api/forms/{form}/{session}/cancel/ - Close the session
    """
    permission_classes = [ScreenPermission]
    serializer_class = FormFieldsSerializer
    sessions = FormSessionStore()

    def initial(self, request, *args, **kwargs):
        self.definition = get_form_definition(kwargs.get('form'))
        super().initial(request, *args, **kwargs)

    @property
    def screen(self):
        definition = getattr(self, 'definition', None)
        return definition.screen if definition else None

    def _owner(self):
        return self.request.user.uid

    def _load(self, session):
        return self.sessions.load(self._owner(), session, self.definition)

    def _fields(self, request):
        serializer = FormFieldsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data['fields']

    def _invalid(self, session, form):
        return Response({
            'message': INVALID_STEP_MESSAGE,
            'errors': form.errors,
            'sessionId': session,
            'state': form.to_state(),
        }, status=status.HTTP_400_BAD_REQUEST)

    def start(self, request, form=None):
        serializer = FormStartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        edit_target_id = serializer.validated_data.get('editTargetId') or None

        wizard = MultiStepForm.start(self.definition, edit_target_id=edit_target_id)
        session = self.sessions.create(self._owner(), wizard)
        logger.info(f"Form session {session} opened on '{form}' by {self._owner()}")
        return Response({'sessionId': session, 'state': wizard.to_state()}, status=status.HTTP_201_CREATED)

    def retrieve(self, request, form=None, session=None):
        wizard = self._load(session)
        return Response({'sessionId': session, 'state': wizard.to_state()})

    def next(self, request, form=None, session=None):
        wizard = self._load(session)
        advanced = wizard.next(self._fields(request))
        self.sessions.save(self._owner(), session, wizard)
        if not advanced:
            return self._invalid(session, wizard)
        return Response({'sessionId': session, 'state': wizard.to_state()})

    def back(self, request, form=None, session=None):
        wizard = self._load(session)
        wizard.back()
        self.sessions.save(self._owner(), session, wizard)
        return Response({'sessionId': session, 'state': wizard.to_state()})

    def submit(self, request, form=None, session=None):
        wizard = self._load(session)
        fields = self._fields(request)
        try:
            record_id = wizard.submit(fields)
        except APIException:
            # Keep what was typed so the submit can be retried
            self.sessions.save(self._owner(), session, wizard)
            raise

        if record_id is None:
            self.sessions.save(self._owner(), session, wizard)
            return self._invalid(session, wizard)

        self.sessions.delete(self._owner(), session)
        return Response({'recordId': record_id, 'state': wizard.to_state()}, status=status.HTTP_201_CREATED)

    def cancel(self, request, form=None, session=None):
        wizard = self._load(session)
        wizard.cancel()
        self.sessions.delete(self._owner(), session)
        logger.info(f"Form session {session} on '{form}' cancelled")
        return Response({'sessionId': session, 'state': wizard.to_state()})
