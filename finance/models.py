"""Database model for the payment record attached to each order."""

from django.db import models

from orders.models import Order

from .payment_status import PENDING, STATE_CHOICES, PaymentPending, from_record, to_record


class TransactionManager(models.Manager):
    def open_for(self, order, status=None):
        """Create the payment record of a new order (pending by default)."""
        state, details = to_record(status or PaymentPending())
        return self.create(order=order, state=state, details=details)


class Transaction(models.Model):
    """Payment progress of one order.

    ``state`` plus ``details`` encode a ``finance.payment_status`` variant;
    use ``payment_status`` / ``set_status`` instead of touching them directly.
    ``checkout_session_ref`` is the most recently opened checkout session.
    """

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='transaction')
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=PENDING, db_index=True)
    details = models.JSONField(default=dict, blank=True)
    checkout_session_ref = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransactionManager()

    def __str__(self):
        return f"TX for Order #{self.order_id} ({self.state})"

    @property
    def payment_status(self):
        return from_record(self.state, self.details)

    def set_status(self, status):
        """Store ``status`` and persist the row."""
        self.state, self.details = to_record(status)
        self.save(update_fields=['state', 'details', 'updated_at'])
