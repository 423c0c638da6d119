"""Database models for orders, their item snapshots and tracking history."""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.exceptions import InvalidStateTransitionError


class OrderStatus(models.TextChoices):
    """Customer-visible lifecycle stage of an order."""

    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    COMPLETED = 'completed', 'Completed'
    EXPIRED = 'expired', 'Expired'
    CANCELED = 'canceled', 'Canceled'


class PaymentMethod(models.TextChoices):
    CARD = 'cardPayment', 'Card payment'
    CASH_ON_DELIVERY = 'cashOnDelivery', 'Cash on delivery'


TERMINAL_STATUSES = frozenset({OrderStatus.EXPIRED, OrderStatus.CANCELED})


class Order(models.Model):
    """A customer's purchase with its fulfillment status.

    Items and total are a snapshot taken at placement. Payment progress lives
    on the one-to-one ``finance.Transaction`` (``order.transaction``).
    """

    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    total_price_cents = models.PositiveBigIntegerField()
    pickup_time = models.DateTimeField(null=True, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['customer', 'timestamp'], name='order_customer_ts_idx'),
            models.Index(fields=['status', 'timestamp'], name='order_status_ts_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.customer.username}"

    @property
    def payment_status(self):
        """Discriminated payment state (see ``finance.payment_status``)."""
        return self.transaction.payment_status

    @property
    def is_cash_on_delivery(self):
        return self.payment_method == PaymentMethod.CASH_ON_DELIVERY


class OrderItem(models.Model):
    """Line item captured from the catalog when the order was placed."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField()
    product_id = models.PositiveBigIntegerField()
    product_name = models.CharField(max_length=255)
    unit_price_cents = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField()

    class Meta:
        ordering = ['order', 'position']
        constraints = [
            models.UniqueConstraint(fields=['order', 'position'], name='unique_order_item_position'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product_name} (order {self.order_id})"

    @property
    def line_total_cents(self):
        return self.unit_price_cents * self.quantity


class TrackingEntryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise InvalidStateTransitionError('Tracking entries are append-only.')

    def delete(self):
        raise InvalidStateTransitionError('Tracking entries are append-only.')


class TrackingEntry(models.Model):
    """One immutable row of an order's timeline.

    ``status`` is the order status right after the change the entry records,
    so the latest entry always mirrors ``Order.status``.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='tracking_entries')
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    note = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)
    is_manual = models.BooleanField(default=False)

    objects = TrackingEntryQuerySet.as_manager()

    class Meta:
        ordering = ['order', 'sequence']
        verbose_name_plural = "Tracking Entries"
        constraints = [
            models.UniqueConstraint(fields=['order', 'sequence'], name='unique_tracking_sequence'),
        ]

    def __str__(self):
        return f"Order #{self.order_id} [{self.sequence}] {self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidStateTransitionError('Tracking entries are append-only.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvalidStateTransitionError('Tracking entries are append-only.')
