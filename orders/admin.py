"""Django admin configuration for orders and related models."""

from django.contrib import admin

from finance.models import Transaction

from .models import Order, OrderItem, TrackingEntry


class OrderItemInline(admin.TabularInline):
    """Inline display of the item snapshot (read-only)."""

    model = OrderItem
    extra = 0
    readonly_fields = ('position', 'product_id', 'product_name', 'unit_price_cents', 'quantity')
    can_delete = False
    max_num = 0


class TrackingEntryInline(admin.TabularInline):
    """Inline display of the order timeline; entries are append-only."""

    model = TrackingEntry
    extra = 0
    readonly_fields = ('sequence', 'status', 'note', 'timestamp', 'is_manual')
    can_delete = False
    max_num = 0


class TransactionInline(admin.StackedInline):
    """Inline display of the order's payment record."""

    model = Transaction
    extra = 0
    can_delete = False
    # Payment state changes only through the state machine.
    max_num = 0

    def get_readonly_fields(self, request, obj=None):
        """Make all transaction fields read-only in admin."""
        return [f.name for f in self.model._meta.fields]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin configuration for customer orders."""

    list_display = ('id', 'customer', 'status', 'payment_method', 'total_price_cents', 'timestamp')
    list_filter = ('status', 'payment_method', 'timestamp')
    search_fields = ('id', 'customer__username')
    readonly_fields = ('customer', 'status', 'payment_method', 'total_price_cents', 'pickup_time', 'timestamp')

    inlines = [OrderItemInline, TrackingEntryInline, TransactionInline]

    def has_delete_permission(self, request, obj=None):
        return False
