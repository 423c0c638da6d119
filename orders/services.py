"""Order store.

Creates orders from a cart snapshot, answers lookups, and owns the single
helper (``set_status``) through which any status change is written together
with its tracking entry.
"""

import logging

from django.db import transaction

from accounts.permissions import is_admin, require_admin
from cart.services import cart_snapshot, lock_cart
from core.exceptions import (
    EmptyCartError,
    ForbiddenError,
    InvalidPaymentMethodError,
    NotFoundError,
    PricingError,
)
from products.catalog import lookup_products

from .models import Order, OrderItem, PaymentMethod
from .tracking import add_entry

logger = logging.getLogger(__name__)


def _normalize_items(items) -> list[tuple[int, int]]:
    """Validate ``(product_id, quantity)`` pairs and merge duplicates.

    First-seen order of products is preserved.
    """
    merged: dict[int, int] = {}
    for entry in items:
        try:
            product_id, quantity = entry
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise PricingError('Malformed order item.')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise PricingError(f'Invalid quantity for product {product_id}.')
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


def place_order(customer, items, payment_method, pickup_time=None) -> Order:
    """Create an order from ``items`` and clear the customer's cart.

    Runs as one transaction: either the order exists and the cart is empty,
    or nothing changed. The pending payment record and the first tracking
    entry are created by the ``post_save`` handler in ``orders.signals``.
    """
    if payment_method not in PaymentMethod.values:
        raise InvalidPaymentMethodError(f'Unknown payment method {payment_method!r}.')

    lines = _normalize_items(items or [])
    if not lines:
        raise EmptyCartError()

    with transaction.atomic():
        cart = lock_cart(customer)

        snapshots = lookup_products(pid for pid, _ in lines)
        missing = [pid for pid, _ in lines if pid not in snapshots]
        if missing:
            raise PricingError(f'Products no longer available: {", ".join(str(pid) for pid in missing)}.')

        total = sum(snapshots[pid].price_cents * qty for pid, qty in lines)

        order = Order.objects.create(
            customer=customer,
            payment_method=payment_method,
            total_price_cents=total,
            pickup_time=pickup_time,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                position=position,
                product_id=pid,
                product_name=snapshots[pid].name,
                unit_price_cents=snapshots[pid].price_cents,
                quantity=qty,
            )
            for position, (pid, qty) in enumerate(lines, start=1)
        ])

        cart.items.all().delete()

    logger.info(
        "order placed id=%s customer=%s method=%s total_cents=%s",
        order.id, customer.pk, payment_method, total,
    )
    return order


def place_order_from_cart(customer, payment_method, pickup_time=None) -> Order:
    """Snapshot the customer's cart and place it as an order."""
    with transaction.atomic():
        cart = lock_cart(customer)
        return place_order(customer, cart_snapshot(cart), payment_method, pickup_time)


def lock_order(order_id) -> Order:
    """Fetch an order row locked for update; call inside ``atomic``."""
    order = (
        Order.objects.select_for_update()
        .filter(pk=order_id)
        .first()
    )
    if order is None:
        raise NotFoundError(f'Order {order_id} not found.')
    return order


def set_status(order, status, note, manual=False) -> Order:
    """Write ``status`` and append the matching tracking entry.

    Appends even when the status is unchanged, so settlement and annotations
    are recorded on the timeline.
    """
    if order.status != status:
        order.status = status
        order.save(update_fields=['status'])
    add_entry(order, status, note, manual=manual)
    return order


def _with_relations(queryset):
    return queryset.select_related('customer', 'transaction').prefetch_related('items', 'tracking_entries')


def get_order(order_id, user) -> Order:
    """Return an order visible to ``user`` (its owner or an admin)."""
    order = _with_relations(Order.objects.filter(pk=order_id)).first()
    if order is None:
        raise NotFoundError(f'Order {order_id} not found.')
    if order.customer_id != getattr(user, 'pk', None) and not is_admin(user):
        raise ForbiddenError('You do not have access to this order.')
    return order


def orders_for_customer_queryset(customer):
    return _with_relations(Order.objects.filter(customer=customer)).order_by('-timestamp', '-id')


def all_orders_queryset(user):
    require_admin(user)
    return _with_relations(Order.objects.all()).order_by('-timestamp', '-id')


def list_orders_for_customer(customer) -> list[Order]:
    """Customer's orders, newest first (ties broken by id)."""
    return list(orders_for_customer_queryset(customer))


def list_all_orders(user) -> list[Order]:
    return list(all_orders_queryset(user))
