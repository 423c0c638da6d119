"""Accounts app views.

Contains:
- Account registration
- Customer delivery profile
- Role lookup and admin role management
- Admin credential bootstrap, login and rotation
"""

from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError

from . import services
from .models import CustomerProfile
from .serializers import (
    AdminCredentialsSerializer,
    CustomerProfileSerializer,
    RegisterSerializer,
    UserRoleSerializer,
)


class RegisterView(generics.CreateAPIView):
    """Open registration endpoint for customer accounts."""

    serializer_class = RegisterSerializer
    permission_classes = [AllowAny]
    authentication_classes = []


class CustomerProfileView(APIView):
    """Read or register the caller's delivery profile."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        profile = CustomerProfile.objects.filter(user=request.user).first()
        if profile is None:
            raise NotFoundError('Customer is not registered.')
        return Response(CustomerProfileSerializer(profile).data)

    def put(self, request):
        serializer = CustomerProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = services.register_customer(request.user, **serializer.validated_data)
        return Response(CustomerProfileSerializer(profile).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def current_role(request):
    """Return ``admin``, ``user`` or ``guest`` for the caller."""
    return Response({'role': services.get_user_role(request.user)})


@api_view(['GET'])
@permission_classes([AllowAny])
def admin_configured(request):
    return Response({'configured': services.is_admin_configured()})


@api_view(['POST'])
def admin_setup(request):
    """First-time admin setup; only works while no credentials exist."""
    serializer = AdminCredentialsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.initialize_admin_access(request.user, **serializer.validated_data)
    return Response({'role': services.ROLE_ADMIN}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
def admin_login(request):
    serializer = AdminCredentialsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.authenticate_admin(request.user, **serializer.validated_data)
    return Response({'role': services.ROLE_ADMIN})


@api_view(['PUT'])
def admin_credentials(request):
    serializer = AdminCredentialsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.update_admin_credentials(request.user, **serializer.validated_data)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
def grant_admin(request):
    serializer = UserRoleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    target = services.grant_admin_role(request.user, serializer.validated_data['user_id'])
    return Response({'user_id': target.pk, 'role': services.ROLE_ADMIN})


@api_view(['POST'])
def revoke_admin(request):
    serializer = UserRoleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    target = services.revoke_admin_role(request.user, serializer.validated_data['user_id'])
    return Response({'user_id': target.pk, 'role': services.ROLE_USER})
