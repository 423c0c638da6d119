"""Signals for order side-effects (payment record and first tracking entry)."""

from django.db.models.signals import post_save
from django.dispatch import receiver

from finance.models import Transaction

from .models import Order
from .tracking import add_entry


@receiver(post_save, sender=Order)
def create_order_records(sender, instance, created, **kwargs):
    """Give every new order a pending payment and a "created" timeline entry."""
    if not created:
        return

    Transaction.objects.open_for(instance)
    add_entry(instance, instance.status, 'Order placed')
