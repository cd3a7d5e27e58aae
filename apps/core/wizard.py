# apps/core/wizard.py
"""
Multi-step form controller.

A form definition is an ordered list of steps, each with its own validators.
The controller moves between steps (next / back), can be cancelled, and on
submit from the last step re-validates every step and hands the collected
fields to the definition's save hook (repository create, or update when an
edit target is set).

Form sessions are kept server side in Django's cache.
"""
import logging
import uuid

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email

from apps.core.exceptions import DocumentNotFoundError, FormStateError

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = 'This field is required.'


def is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def _lookup(fields, path):
    """Read a possibly nested value ('address.city')"""
    value = fields
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def is_truthy(value):
    if isinstance(value, str):
        return value.strip().lower() in ('yes', 'true', '1', 'on')
    return bool(value)


# Validators: callables taking the form fields and returning {field: message}

def required(*names):
    def validator(fields):
        return {name: REQUIRED_MESSAGE for name in names if is_blank(_lookup(fields, name))}
    return validator


def required_if(name, condition_field, condition_value=True):
    """`name` is required when `condition_field` equals `condition_value` (truthiness for True)"""
    def validator(fields):
        current = _lookup(fields, condition_field)
        if condition_value is True:
            applies = is_truthy(current)
        else:
            applies = current == condition_value
        if applies and is_blank(_lookup(fields, name)):
            return {name: REQUIRED_MESSAGE}
        return {}
    return validator


def email_format(name):
    def validator(fields):
        value = _lookup(fields, name)
        if is_blank(value):
            return {}
        try:
            validate_email(str(value).strip())
        except DjangoValidationError:
            return {name: 'Enter a valid email address.'}
        return {}
    return validator


def at_least_one(*names, message=None):
    def validator(fields):
        if all(is_blank(_lookup(fields, name)) for name in names):
            return {names[0]: message or f"Provide at least one of: {', '.join(names)}."}
        return {}
    return validator


def numeric(*names):
    def validator(fields):
        errors = {}
        for name in names:
            value = _lookup(fields, name)
            if is_blank(value):
                continue
            try:
                float(value)
            except (TypeError, ValueError):
                errors[name] = 'Enter a number.'
        return errors
    return validator


class FormStep:

    def __init__(self, title, fields=(), validators=()):
        self.title = title
        self.fields = tuple(fields)
        self.validators = tuple(validators)

    def validate(self, fields):
        errors = {}
        for validator in self.validators:
            for name, message in validator(fields).items():
                errors.setdefault(name, message)
        return errors


class FormDefinition:
    """
    Named multi-step form bound to a screen.

    `save(fields, edit_target_id)` performs the write and returns the record id;
    `load(edit_target_id)` returns the record used to seed an edit session.
    """

    def __init__(self, name, screen, steps, save, load=None):
        self.name = name
        self.screen = screen
        self.steps = list(steps)
        self.save = save
        self.load = load

    @property
    def last_step(self):
        return len(self.steps)

    def validate_all(self, fields):
        errors = {}
        for step in self.steps:
            for name, message in step.validate(fields).items():
                errors.setdefault(name, message)
        return errors


class MultiStepForm:
    """
    State machine over a FormDefinition.

    States: step 1..n while open, then closed. `next` only advances when the
    current step validates; `back` never validates; `submit` is only allowed
    from the last step and closes the form once the write succeeded.
    """

    def __init__(self, definition, step=1, fields=None, errors=None, edit_target_id=None, closed=False):
        self.definition = definition
        self.step = step
        self.fields = dict(fields or {})
        self.errors = dict(errors or {})
        self.edit_target_id = edit_target_id
        self.closed = closed

    @classmethod
    def start(cls, definition, edit_target_id=None):
        fields = {}
        if edit_target_id is not None:
            if definition.load is None:
                raise FormStateError({'message': f"The {definition.name} form cannot edit records."})
            record = definition.load(edit_target_id)
            if record is None:
                raise DocumentNotFoundError()
            fields = {key: value for key, value in record.items() if key != 'id'}
        return cls(definition, fields=fields, edit_target_id=edit_target_id)

    @property
    def is_last_step(self):
        return self.step == self.definition.last_step

    @property
    def current_step(self):
        return self.definition.steps[self.step - 1]

    def _ensure_open(self):
        if self.closed:
            raise FormStateError({'message': 'This form is closed.'})

    def _merge(self, fields):
        if fields:
            self.fields.update(fields)

    def next(self, fields=None):
        """Validate the current step and advance; returns False (staying put) on errors"""
        self._ensure_open()
        self._merge(fields)
        errors = self.current_step.validate(self.fields)
        if errors:
            self.errors = errors
            return False
        self.errors = {}
        self.step = min(self.step + 1, self.definition.last_step)
        return True

    def back(self):
        self._ensure_open()
        self.errors = {}
        self.step = max(self.step - 1, 1)

    def cancel(self):
        self.closed = True

    def submit(self, fields=None):
        """
        Validate every step and save. Returns the record id, or None when
        validation failed (errors are kept on the form). A failing save
        propagates and leaves the form untouched so it can be retried.
        """
        self._ensure_open()
        if not self.is_last_step:
            raise FormStateError({'message': 'The form can only be submitted from its last step.'})

        self._merge(fields)
        errors = self.definition.validate_all(self.fields)
        if errors:
            self.errors = errors
            return None

        record_id = self.definition.save(dict(self.fields), self.edit_target_id)
        logger.info(f"Form '{self.definition.name}' saved record {record_id}")

        self.step = 1
        self.fields = {}
        self.errors = {}
        self.closed = True
        return record_id

    def to_state(self):
        return {
            'form': self.definition.name,
            'step': self.step,
            'stepCount': self.definition.last_step,
            'stepTitle': self.current_step.title,
            'fields': self.fields,
            'errors': self.errors,
            'editTargetId': self.edit_target_id,
            'closed': self.closed,
        }

    @classmethod
    def from_state(cls, definition, state):
        return cls(
            definition,
            step=state['step'],
            fields=state['fields'],
            errors=state['errors'],
            edit_target_id=state['editTargetId'],
            closed=state['closed'],
        )


class FormSessionStore:
    """Form sessions in Django's cache, keyed by owner uid and session id"""

    key_prefix = 'form-session'

    def _key(self, owner, session_id):
        return f'{self.key_prefix}:{owner}:{session_id}'

    def create(self, owner, form):
        session_id = uuid.uuid4().hex
        self.save(owner, session_id, form)
        return session_id

    def save(self, owner, session_id, form):
        cache.set(self._key(owner, session_id), form.to_state(), timeout=settings.FORM_SESSION_TIMEOUT)

    def load(self, owner, session_id, definition):
        state = cache.get(self._key(owner, session_id))
        if state is None or state.get('form') != definition.name:
            raise DocumentNotFoundError({'message': 'Form session not found or expired.'})
        return MultiStepForm.from_state(definition, state)

    def delete(self, owner, session_id):
        cache.delete(self._key(owner, session_id))


def bind_repository(repository_class, serializer_class):
    """
    Build the (save, load) hooks of a FormDefinition from a repository and
    the serializer guarding its writes.
    """
    def save(fields, edit_target_id):
        repository = repository_class()
        existing = repository.retrieve(edit_target_id) if edit_target_id else None
        serializer = serializer_class(data=fields, partial=existing is not None, context={'existing': existing})
        serializer.is_valid(raise_exception=True)
        if existing is not None:
            repository.update(edit_target_id, serializer.validated_data)
            return edit_target_id
        return repository.create(serializer.validated_data)

    def load(record_id):
        return repository_class().get(record_id)

    return save, load
