"""Django admin configuration for the catalog."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for products."""

    list_display = ('id', 'name', 'category', 'price_cents', 'is_published')
    search_fields = ('name', 'description')
    list_filter = ('category', 'is_published')
