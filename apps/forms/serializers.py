# apps/forms/serializers.py
from rest_framework import serializers


class FormStartSerializer(serializers.Serializer):
    editTargetId = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class FormFieldsSerializer(serializers.Serializer):
    fields = serializers.DictField(required=False, default=dict)
