"""Signals for finance side-effects (payment state change logging)."""

import logging

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Transaction

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Transaction)
def capture_old_state(sender, instance, **kwargs):
    """Remember the stored state so post-save can tell whether it changed."""
    if instance.pk:
        instance._old_state = (
            Transaction.objects.filter(pk=instance.pk).values_list('state', flat=True).first()
        )
    else:
        instance._old_state = None


@receiver(post_save, sender=Transaction)
def log_state_change(sender, instance, created, **kwargs):
    old_state = getattr(instance, '_old_state', None)
    if created:
        logger.debug("payment record opened for order %s (%s)", instance.order_id, instance.state)
    elif old_state != instance.state:
        logger.info("payment for order %s: %s -> %s", instance.order_id, old_state, instance.state)
