"""Serializers for the product catalog."""

from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Product payload; prices are integer minor units."""

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'category', 'price_cents', 'is_published', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_category(self, value):
        return value.strip().lower()
