"""Cart APIs for authenticated customers."""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from . import services
from .serializers import CartItemWriteSerializer, ShoppingCartSerializer


class CartViewSet(viewsets.ViewSet):
    """Cart API.

    The cart is addressed implicitly by the caller; item routes take the
    product id as their key.
    """

    permission_classes = [IsAuthenticated]

    def _cart_response(self, request, status_code=status.HTTP_200_OK):
        cart = services.get_cart(request.user)
        return Response(ShoppingCartSerializer(cart).data, status=status_code)

    def list(self, request):
        """Return the caller's cart (created on first access)."""
        return self._cart_response(request)

    @action(detail=False, methods=['post'], url_path='items')
    def add_item(self, request):
        """Add a product, merging quantity when it is already in the cart."""
        serializer = CartItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.add_to_cart(
            request.user,
            serializer.validated_data['product_id'],
            serializer.validated_data['quantity'],
        )
        return self._cart_response(request, status.HTTP_201_CREATED)

    @action(detail=False, methods=['patch'], url_path=r'items/(?P<product_id>\d+)')
    def update_item(self, request, product_id=None):
        serializer = CartItemWriteSerializer(data={'product_id': product_id, **request.data})
        serializer.is_valid(raise_exception=True)
        services.update_cart_item(request.user, int(product_id), serializer.validated_data['quantity'])
        return self._cart_response(request)

    @update_item.mapping.delete
    def remove_item(self, request, product_id=None):
        services.remove_from_cart(request.user, int(product_id))
        return self._cart_response(request)

    @action(detail=False, methods=['post'], url_path='clear')
    def clear(self, request):
        services.clear_cart(request.user)
        return self._cart_response(request)
