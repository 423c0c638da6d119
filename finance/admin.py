"""Django admin configuration for finance models."""

from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Read-only view of payment records."""

    list_display = ('id', 'get_order_id', 'state', 'updated_at')
    list_filter = ('state', 'updated_at')
    search_fields = ('order__id', 'order__customer__username')
    readonly_fields = ('order', 'state', 'details', 'checkout_session_ref', 'created_at', 'updated_at')

    def get_order_id(self, obj):
        """Render order id in a friendly format."""
        return f"Order #{obj.order_id}"
    get_order_id.short_description = 'Order'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
