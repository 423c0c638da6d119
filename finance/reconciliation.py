"""Back-office operations that change orders outside the customer flow.

Each operation checks the caller's admin role against the database first,
then locks the order, and writes one manual tracking entry plus an audit log
line naming the administrator.
"""

import logging

from django.db import transaction
from rest_framework.exceptions import ValidationError

from accounts.permissions import require_admin
from core.exceptions import InvalidStateTransitionError
from orders.models import OrderStatus
from orders.services import lock_order, set_status

from .payment_status import PaymentCompleted
from .state_machine import mark_cod_settled  # noqa: F401

audit_log = logging.getLogger('storefront.audit')

ADMIN_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.CANCELED, OrderStatus.EXPIRED},
    OrderStatus.CONFIRMED: {OrderStatus.COMPLETED, OrderStatus.CANCELED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.EXPIRED: set(),
    OrderStatus.CANCELED: set(),
}

FORCE_COMPLETE_FROM = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def _transition_allowed(current, target) -> bool:
    return target in ADMIN_TRANSITIONS.get(current, set())


def force_complete(order_id, user, note=''):
    """Complete an order whatever its payment state (escape hatch)."""
    require_admin(user)

    with transaction.atomic():
        order = lock_order(order_id)
        if order.status not in FORCE_COMPLETE_FROM:
            raise InvalidStateTransitionError(f'Order {order.id} is {order.status}; cannot force completion.')

        previous = order.status
        message = 'Completed by administrator override'
        if note:
            message = f'{message}: {note}'
        set_status(order, OrderStatus.COMPLETED, message, manual=True)

    audit_log.warning(
        "force complete order=%s by=%s from=%s payment=%s",
        order.id, user.username, previous, order.transaction.state,
    )
    return order


def set_order_status(order_id, user, status, note=''):
    """Admin status change restricted to ``ADMIN_TRANSITIONS``."""
    require_admin(user)
    if status not in OrderStatus.values:
        raise InvalidStateTransitionError(f'Unknown status {status!r}.')

    with transaction.atomic():
        order = lock_order(order_id)
        previous = order.status
        if not _transition_allowed(previous, status):
            raise InvalidStateTransitionError(f'Cannot move order {order.id} from {previous} to {status}.')
        if status == OrderStatus.COMPLETED and not isinstance(order.payment_status, PaymentCompleted):
            raise InvalidStateTransitionError(f'Order {order.id} cannot complete before payment.')

        message = note or f'Status changed to {status} by administrator'
        set_status(order, status, message, manual=True)

    audit_log.info("set status order=%s by=%s %s->%s", order.id, user.username, previous, status)
    return order


def annotate_tracking(order_id, user, note):
    """Append a manual note to the timeline without changing the status."""
    require_admin(user)
    note = str(note or '').strip()
    if not note:
        raise ValidationError({'note': 'Note must not be empty.'})

    with transaction.atomic():
        order = lock_order(order_id)
        set_status(order, order.status, note, manual=True)

    audit_log.info("annotate order=%s by=%s", order.id, user.username)
    return order
