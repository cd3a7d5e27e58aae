# apps/catalog/serializers.py
from rest_framework import serializers


class CatalogNameSerializer(serializers.Serializer):
    """Category or item name; surrounding whitespace is trimmed, blank names are rejected"""
    name = serializers.CharField(max_length=150, trim_whitespace=True)

    def validate_name(self, value):
        if '/' in value:
            raise serializers.ValidationError('Names cannot contain "/".')
        return value
