"""Database models for the grocery catalog."""

from django.db import models


class Product(models.Model):
    """A sellable grocery item.

    Prices are integer minor units (paise/cents). Orders copy name and price
    at placement time, so edits here never reach historical orders.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, db_index=True)
    price_cents = models.PositiveIntegerField()
    is_published = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.name} ({self.category})"
