"""Payment provider status API."""

from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .providers import is_provider_configured
from .serializers import ProviderConfiguredSerializer


@api_view(['GET'])
@permission_classes([AllowAny])
def provider_configured(request):
    """Whether card checkout is available (a provider secret is set)."""
    data = {'configured': is_provider_configured(), 'currency': settings.STOREFRONT_CURRENCY}
    return Response(ProviderConfiguredSerializer(data).data)
