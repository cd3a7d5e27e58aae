# apps/users/serializers.py
from rest_framework import serializers

from apps.core.serializers import IsoDateField
from apps.users.identity import MIN_PASSWORD_LENGTH
from apps.users.roles import PERMISSION_CHOICES, PERMISSION_READ


class EmployeeSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    dob = IsoDateField(required=False, allow_blank=True)
    permission = serializers.ChoiceField(choices=PERMISSION_CHOICES, required=False)

    class Meta:
        ref_name = 'EmployeeSerializer'

    def validate(self, attrs):
        # New accounts start read-only; updates keep the stored level
        if self.context.get('existing') is None:
            attrs.setdefault('permission', PERMISSION_READ)
        return attrs


class EmployeeCreateSerializer(EmployeeSerializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=MIN_PASSWORD_LENGTH,
                                     error_messages={'min_length': 'Password should be at least 6 characters.'})
    confirmPassword = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if attrs['password'] != attrs.pop('confirmPassword'):
            raise serializers.ValidationError({'confirmPassword': ['Passwords do not match.']})
        return super().validate(attrs)


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ProfileSerializer(serializers.Serializer):
    displayName = serializers.CharField(max_length=150)


class ProfilePhotoSerializer(serializers.Serializer):
    photo = serializers.FileField()

    def validate_photo(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError('Upload an image file.')
        return value
