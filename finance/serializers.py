"""DRF serializers for finance APIs."""

from rest_framework import serializers


class ProviderConfiguredSerializer(serializers.Serializer):
    """Whether card checkout is available, and in which currency."""

    configured = serializers.BooleanField()
    currency = serializers.CharField()
