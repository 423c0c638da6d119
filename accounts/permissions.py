"""Role checks for the identity boundary.

``require_admin`` is the single guard every back-office operation calls
before touching order or payment state.
"""

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import permissions

from core.exceptions import ForbiddenError


def is_admin(user) -> bool:
    """Return True when ``user`` currently holds the admin role.

    The role is read from the database on every call; a role cached on the
    request's user object is never trusted.
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    User = get_user_model()
    return (
        User.objects.filter(pk=user.pk, is_active=True)
        .filter(Q(user_type=User.ADMIN) | Q(is_superuser=True))
        .exists()
    )


def require_admin(user):
    """Raise ``ForbiddenError`` unless ``user`` is an administrator."""
    if not is_admin(user):
        raise ForbiddenError('Administrator access required.')
    return user


class IsStoreAdmin(permissions.BasePermission):
    """Allow access only to administrators (re-verified per request)."""

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsAdminOrReadOnly(permissions.BasePermission):
    """Allow public reads; writes only for administrators."""

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin(request.user)
