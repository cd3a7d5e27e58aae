# apps/core/serializers.py
from django.utils.dateparse import parse_date
from rest_framework import serializers


class IsoDateField(serializers.CharField):
    """
    Date kept as an ISO 'YYYY-MM-DD' string, the way the documents store it.
    Blank values are allowed when allow_blank=True.
    """
    default_error_messages = {
        'invalid_date': 'Enter a valid date in YYYY-MM-DD format.',
    }

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            parsed = parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            self.fail('invalid_date')
        return parsed.isoformat()


class StrippedCharField(serializers.CharField):
    """CharField that defaults to optional, blank-allowed input"""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        super().__init__(**kwargs)


class OptionalFloatField(serializers.FloatField):
    """Number that may be left empty; '' and null are both stored as null"""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def validate_empty_values(self, data):
        if isinstance(data, str) and not data.strip():
            return (True, None)
        return super().validate_empty_values(data)
