"""DRF serializers for cart APIs."""

from rest_framework import serializers

from .models import ShoppingCart, ShoppingCartItem


class ShoppingCartItemSerializer(serializers.ModelSerializer):
    """Cart line with the product's current price.

    Normalizes field names for the frontend (``qty`` -> ``quantity``).
    """

    product_id = serializers.ReadOnlyField(source='product.id')
    product_name = serializers.ReadOnlyField(source='product.name')
    price_cents = serializers.ReadOnlyField(source='product.price_cents')
    quantity = serializers.IntegerField(source='qty', read_only=True)
    subtotal_cents = serializers.ReadOnlyField()

    class Meta:
        model = ShoppingCartItem
        fields = ['product_id', 'product_name', 'price_cents', 'quantity', 'subtotal_cents']


class ShoppingCartSerializer(serializers.ModelSerializer):
    """Serializer for the shopping cart including nested items."""

    items = ShoppingCartItemSerializer(many=True, read_only=True)
    total_price_cents = serializers.ReadOnlyField()

    class Meta:
        model = ShoppingCart
        fields = ['id', 'items', 'total_price_cents']


class CartItemWriteSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=0, default=1)
