"""Identity-side operations: customer registration, admin bootstrap and roles."""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import check_password, make_password
from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from core.exceptions import AdminCredentialsError, ForbiddenError, NotFoundError

from .models import AdminCredentials, CustomerProfile
from .permissions import is_admin, require_admin

audit_log = logging.getLogger('storefront.audit')

ROLE_ADMIN = 'admin'
ROLE_USER = 'user'
ROLE_GUEST = 'guest'


def _require_authenticated(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        raise ForbiddenError('Authentication required.')


def _clean_credentials(username, password):
    username = str(username or '').strip()
    password = str(password or '')
    if not username or not password:
        raise ValidationError({'detail': 'Username and password must not be empty.'})
    return username, password


def get_user_role(user) -> str:
    if user is None or not getattr(user, 'is_authenticated', False):
        return ROLE_GUEST
    return ROLE_ADMIN if is_admin(user) else ROLE_USER


def register_customer(user, name, phone_number, pickup_address) -> CustomerProfile:
    """Create or update the caller's delivery profile."""
    _require_authenticated(user)
    profile, _ = CustomerProfile.objects.update_or_create(
        user=user,
        defaults={
            'name': name,
            'phone_number': phone_number,
            'pickup_address': pickup_address,
        },
    )
    return profile


def get_customer_profile(user_id) -> CustomerProfile:
    profile = CustomerProfile.objects.select_related('user').filter(user_id=user_id).first()
    if profile is None:
        raise NotFoundError('Customer is not registered.')
    return profile


def is_admin_configured() -> bool:
    return AdminCredentials.objects.exists()


def _grant(user):
    User = get_user_model()
    User.objects.filter(pk=user.pk).update(user_type=User.ADMIN)
    user.user_type = User.ADMIN


def initialize_admin_access(user, username, password):
    """Store the first admin credentials and make the caller an admin.

    Only allowed while no credentials exist.
    """
    _require_authenticated(user)
    username, password = _clean_credentials(username, password)
    with transaction.atomic():
        try:
            _, created = AdminCredentials.objects.get_or_create(
                pk=AdminCredentials.SINGLETON_PK,
                defaults={
                    'username': username,
                    'password': make_password(password),
                    'updated_by': user,
                },
            )
        except IntegrityError:
            created = False
        if not created:
            raise AdminCredentialsError('Admin is already configured.')
        _grant(user)
    audit_log.info("admin credentials initialized by user=%s", user.username)


def authenticate_admin(user, username, password):
    """Grant the caller the admin role when the credentials match."""
    _require_authenticated(user)
    creds = AdminCredentials.objects.filter(pk=AdminCredentials.SINGLETON_PK).first()
    if creds is None:
        raise AdminCredentialsError('Credentials not set.')
    if creds.username != str(username or '').strip() or not check_password(str(password or ''), creds.password):
        audit_log.warning("failed admin authentication by user=%s", user.username)
        raise ForbiddenError('Wrong username or password.')
    _grant(user)
    audit_log.info("admin role granted via credentials to user=%s", user.username)


def update_admin_credentials(user, username, password):
    require_admin(user)
    username, password = _clean_credentials(username, password)
    with transaction.atomic():
        creds = AdminCredentials.objects.select_for_update().filter(pk=AdminCredentials.SINGLETON_PK).first()
        if creds is None:
            creds = AdminCredentials(pk=AdminCredentials.SINGLETON_PK)
        creds.username = username
        creds.password = make_password(password)
        creds.updated_by = user
        creds.save()
    audit_log.info("admin credentials rotated by user=%s", user.username)


def _get_user(user_id):
    target = get_user_model().objects.filter(pk=user_id).first()
    if target is None:
        raise NotFoundError('User not found.')
    return target


def grant_admin_role(actor, user_id):
    require_admin(actor)
    target = _get_user(user_id)
    _grant(target)
    audit_log.info("admin role granted to user=%s by user=%s", target.username, actor.username)
    return target


def revoke_admin_role(actor, user_id):
    require_admin(actor)
    target = _get_user(user_id)
    if target.pk == actor.pk:
        raise ForbiddenError('You cannot revoke your own admin role.')
    User = get_user_model()
    User.objects.filter(pk=target.pk).update(user_type=User.CUSTOMER)
    target.user_type = User.CUSTOMER
    audit_log.info("admin role revoked from user=%s by user=%s", target.username, actor.username)
    return target
