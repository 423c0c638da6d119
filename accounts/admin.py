"""Django admin configuration for accounts."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import AdminCredentials, CustomerProfile, User


class CustomerProfileInline(admin.StackedInline):
    model = CustomerProfile
    can_delete = False
    verbose_name_plural = 'Customer Profile Info'


class CustomUserAdmin(UserAdmin):
    model = User
    list_display = ['username', 'email', 'user_type', 'is_staff']

    fieldsets = UserAdmin.fieldsets + (
        ('Role', {'fields': ('user_type',)}),
    )

    def get_inline_instances(self, request, obj=None):
        if not obj or obj.user_type != User.CUSTOMER:
            return []
        return [CustomerProfileInline(self.model, self.admin_site)]


@admin.register(AdminCredentials)
class AdminCredentialsAdmin(admin.ModelAdmin):
    """Credentials are read-only here; rotate them through the API."""

    list_display = ('username', 'updated_at', 'updated_by')
    readonly_fields = ('username', 'password', 'updated_at', 'updated_by')

    def has_add_permission(self, request):
        return False


admin.site.register(User, CustomUserAdmin)
