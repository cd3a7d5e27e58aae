# apps/notifications/serializers.py
from rest_framework import serializers


class SendEmailSerializer(serializers.Serializer):
    clientIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
