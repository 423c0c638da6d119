"""Database models for customer shopping carts."""

from django.conf import settings
from django.db import models

from products.models import Product


class ShoppingCart(models.Model):
    """A customer's cart; exactly one per user, mutated only by its owner."""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cart')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart of {self.user.username}"

    @property
    def total_price_cents(self):
        return sum(item.subtotal_cents for item in self.items.all())


class ShoppingCartItem(models.Model):
    """Line item inside a shopping cart."""

    cart = models.ForeignKey(ShoppingCart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='+')
    qty = models.PositiveIntegerField(default=1)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['added_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product'], name='unique_cart_product'),
        ]

    def __str__(self):
        return f"{self.qty} x {self.product.name}"

    @property
    def subtotal_cents(self):
        return self.product.price_cents * self.qty
