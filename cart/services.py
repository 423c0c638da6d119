"""Cart operations for the owning customer.

The cart is only cleared by checkout (inside the order placement
transaction) or explicitly by its owner.
"""

from django.db import transaction
from rest_framework.exceptions import ValidationError

from core.exceptions import NotFoundError
from products.models import Product

from .models import ShoppingCart, ShoppingCartItem


def get_cart(user) -> ShoppingCart:
    cart, _ = ShoppingCart.objects.get_or_create(user=user)
    return cart


def lock_cart(user) -> ShoppingCart:
    """Return the user's cart row locked for update; call inside ``atomic``."""
    get_cart(user)
    return ShoppingCart.objects.select_for_update().get(user=user)


def _published_product(product_id) -> Product:
    product = Product.objects.filter(pk=product_id, is_published=True).first()
    if product is None:
        raise NotFoundError('Product not found.')
    return product


def _positive(quantity, allow_zero=False) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError({'quantity': 'Quantity must be an integer.'})
    if qty < 0 or (qty == 0 and not allow_zero):
        raise ValidationError({'quantity': 'Quantity must be at least 1.'})
    return qty


def add_to_cart(user, product_id, quantity=1) -> ShoppingCartItem:
    """Add ``quantity`` of a product, merging with an existing line."""
    qty = _positive(quantity)
    product = _published_product(product_id)
    with transaction.atomic():
        cart = lock_cart(user)
        item = ShoppingCartItem.objects.filter(cart=cart, product=product).first()
        if item is None:
            item = ShoppingCartItem(cart=cart, product=product, qty=qty)
        else:
            item.qty = int(item.qty) + qty
        item.save()
    return item


def update_cart_item(user, product_id, quantity) -> ShoppingCartItem | None:
    """Set the quantity of a line; a quantity of 0 removes it."""
    qty = _positive(quantity, allow_zero=True)
    with transaction.atomic():
        cart = lock_cart(user)
        item = ShoppingCartItem.objects.filter(cart=cart, product_id=product_id).first()
        if item is None:
            raise NotFoundError('Product is not in the cart.')
        if qty == 0:
            item.delete()
            return None
        item.qty = qty
        item.save(update_fields=['qty'])
    return item


def remove_from_cart(user, product_id) -> None:
    with transaction.atomic():
        cart = lock_cart(user)
        deleted, _ = ShoppingCartItem.objects.filter(cart=cart, product_id=product_id).delete()
    if not deleted:
        raise NotFoundError('Product is not in the cart.')


def clear_cart(user) -> None:
    with transaction.atomic():
        cart = lock_cart(user)
        cart.items.all().delete()


def cart_snapshot(cart) -> list[tuple[int, int]]:
    """``(product_id, quantity)`` pairs in the order they were added."""
    return [(item.product_id, int(item.qty)) for item in cart.items.order_by('added_at', 'id')]
