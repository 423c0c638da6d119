"""URL routes for accounts APIs."""

from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

from .views import (
    CustomerProfileView,
    RegisterView,
    admin_configured,
    admin_credentials,
    admin_login,
    admin_setup,
    current_role,
    grant_admin,
    revoke_admin,
)

urlpatterns = [
    path('register/', RegisterView.as_view(), name='auth_register'),
    path('login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    path('profile/', CustomerProfileView.as_view(), name='customer_profile'),
    path('role/', current_role, name='current_role'),

    path('admin/configured/', admin_configured, name='admin_configured'),
    path('admin/setup/', admin_setup, name='admin_setup'),
    path('admin/login/', admin_login, name='admin_login'),
    path('admin/credentials/', admin_credentials, name='admin_credentials'),
    path('admin/grant/', grant_admin, name='admin_grant'),
    path('admin/revoke/', revoke_admin, name='admin_revoke'),
]
