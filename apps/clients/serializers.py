# apps/clients/serializers.py
from rest_framework import serializers

from apps.core.serializers import IsoDateField, StrippedCharField

MARITAL_STATUS_CHOICES = ['Yes', 'No']
RELATION_CHOICES = ['Wife', 'Husband', 'Father', 'Mother', 'Children', 'Other']


class ClientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    familyName = serializers.CharField(max_length=150)
    dob = IsoDateField()
    number = serializers.CharField(max_length=20)
    whatsappNumber = StrippedCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = StrippedCharField()
    birthCity = StrippedCharField(max_length=100)
    maritalStatus = serializers.ChoiceField(choices=MARITAL_STATUS_CHOICES, required=False)
    spouseName = StrippedCharField(max_length=150)
    panCard = StrippedCharField(max_length=20)
    aadhaarCard = StrippedCharField(max_length=20)
    passportNumber = StrippedCharField(max_length=20)
    voterNumber = StrippedCharField(max_length=20)
    canteenCardNumber = StrippedCharField(max_length=30)
    city = StrippedCharField(max_length=100)
    state = StrippedCharField(max_length=100)
    location = StrippedCharField(max_length=100)
    area = StrippedCharField(max_length=100)

    class Meta:
        ref_name = 'ClientSerializer'

    def validate(self, attrs):
        existing = self.context.get('existing')
        if existing is None:
            attrs.setdefault('maritalStatus', 'No')
        # Updates are checked against the stored record
        merged = {**(existing or {}), **attrs}
        if merged.get('maritalStatus') == 'Yes':
            if not (merged.get('spouseName') or '').strip():
                raise serializers.ValidationError({'spouseName': ['Spouse name is required when married.']})
        elif 'maritalStatus' in attrs:
            attrs['spouseName'] = ''
        return attrs


class FamilyMemberSerializer(serializers.Serializer):
    relation = serializers.ChoiceField(choices=RELATION_CHOICES)
    name = serializers.CharField(max_length=150)
    dob = IsoDateField(required=False, allow_blank=True)
    birthCity = StrippedCharField(max_length=100)
    aadhaarCard = StrippedCharField(max_length=20)
    panCard = StrippedCharField(max_length=20)
    passportNumber = StrippedCharField(max_length=20)
    number = StrippedCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)


class ProfilePictureSerializer(serializers.Serializer):
    picture = serializers.FileField()

    def validate_picture(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError('Upload an image file.')
        return value


class RunsheetSerializer(serializers.Serializer):
    clientIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    name = StrippedCharField(max_length=150)
    date = StrippedCharField(max_length=30)
    pickupDelivery = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)


class ClientReferenceField(serializers.CharField):
    """Client document id; must point at an existing client"""
    default_error_messages = {
        'unknown_client': 'Unknown client.',
    }

    def to_internal_value(self, data):
        from apps.clients.repositories import ClientRepository

        value = super().to_internal_value(data)
        if ClientRepository().get(value) is None:
            self.fail('unknown_client')
        return value
