# apps/locations/serializers.py
from rest_framework import serializers


class NamedPlaceSerializer(serializers.Serializer):
    """Location / area: a trimmed, non-blank name"""
    name = serializers.CharField(max_length=150, trim_whitespace=True)
