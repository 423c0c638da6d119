"""Payment state machine.

pending -> completed (terminal), pending -> failed, failed -> pending (retry).
Every transition locks the order row first, so concurrent settlement
attempts on one order run one after another and see each other's result.
"""

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from accounts.permissions import require_admin
from core.exceptions import (
    AlreadySettledError,
    InvalidPaymentMethodError,
    InvalidStateTransitionError,
)
from orders.models import TERMINAL_STATUSES, OrderStatus
from orders.services import lock_order, set_status

from .payment_status import PaymentCompleted, PaymentFailed, PaymentPending

logger = logging.getLogger(__name__)
audit_log = logging.getLogger('storefront.audit')


def _validate_amount(amount_cents):
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents < 0:
        raise ValidationError({'amount_cents': 'Amount must be a non-negative integer number of cents.'})


def _ensure_not_terminal(order):
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionError(f'Order {order.id} is {order.status}.')


def mark_completed(order_id, session_ref, amount_cents):
    """Record a successful card payment for ``order_id``.

    Repeating the call with the session that already settled the order is a
    no-op; a different session raises ``AlreadySettledError``.
    """
    _validate_amount(amount_cents)
    session_ref = str(session_ref or '').strip()
    if not session_ref:
        raise ValidationError({'session_ref': 'Session reference is required.'})

    with transaction.atomic():
        order = lock_order(order_id)
        if order.is_cash_on_delivery:
            raise InvalidPaymentMethodError('Cash on delivery orders are settled by an administrator.')

        txn = order.transaction
        current = txn.payment_status
        if isinstance(current, PaymentCompleted):
            if current.session_ref == session_ref:
                if current.amount_cents != amount_cents:
                    logger.error(
                        "order %s session %s reported %s cents, settled earlier for %s",
                        order.id, session_ref, amount_cents, current.amount_cents,
                    )
                else:
                    logger.info("order %s already settled by session %s", order.id, session_ref)
                return order
            logger.error(
                "order %s settled by session %s; rejected second settlement from %s",
                order.id, current.session_ref, session_ref,
            )
            raise AlreadySettledError()

        _ensure_not_terminal(order)

        if amount_cents != order.total_price_cents:
            logger.warning(
                "order %s settled for %s cents, expected %s",
                order.id, amount_cents, order.total_price_cents,
            )

        txn.set_status(PaymentCompleted(
            amount_cents=amount_cents,
            timestamp=timezone.now(),
            session_ref=session_ref,
        ))
        next_status = OrderStatus.CONFIRMED if order.status == OrderStatus.PENDING else order.status
        set_status(order, next_status, f'Payment received ({amount_cents} cents)')

    logger.info("order %s payment completed session=%s amount_cents=%s", order.id, session_ref, amount_cents)
    return order


def attach_session(order_id, session_ref):
    """Remember ``session_ref`` as the order's open checkout session."""
    with transaction.atomic():
        order = lock_order(order_id)
        txn = order.transaction
        txn.checkout_session_ref = str(session_ref)
        txn.save(update_fields=['checkout_session_ref', 'updated_at'])
    return order


def mark_failed(order_id, reason, session_ref=None):
    """Record a failed card payment; the order status is left as it is.

    A failure reported for a session other than the open one is ignored.
    """
    reason = str(reason or '').strip() or 'Payment failed'

    with transaction.atomic():
        order = lock_order(order_id)
        if order.is_cash_on_delivery:
            raise InvalidPaymentMethodError('Cash on delivery orders cannot fail payment.')

        txn = order.transaction
        if session_ref and txn.checkout_session_ref and str(session_ref) != txn.checkout_session_ref:
            logger.info(
                "order %s ignored failure of stale session %s (open: %s)",
                order.id, session_ref, txn.checkout_session_ref,
            )
            return order

        current = txn.payment_status
        if isinstance(current, PaymentCompleted):
            raise AlreadySettledError()
        if isinstance(current, PaymentFailed) and current.reason == reason:
            return order

        _ensure_not_terminal(order)

        txn.set_status(PaymentFailed(reason=reason))
        set_status(order, order.status, f'Payment failed: {reason}')

    logger.info("order %s payment failed: %s", order.id, reason)
    return order


def reopen_for_retry(order_id):
    """Move a failed payment back to pending for a new checkout attempt."""
    with transaction.atomic():
        order = lock_order(order_id)
        txn = order.transaction
        if not isinstance(txn.payment_status, PaymentFailed):
            return order
        _ensure_not_terminal(order)

        txn.set_status(PaymentPending())
        set_status(order, order.status, 'Payment retry started')

    logger.info("order %s payment reopened for retry", order.id)
    return order


def mark_cod_settled(order_id, user):
    """Admin: record cash received for a cash-on-delivery order and complete it."""
    require_admin(user)

    with transaction.atomic():
        order = lock_order(order_id)
        if not order.is_cash_on_delivery:
            raise InvalidPaymentMethodError('Only cash on delivery orders can be settled manually.')

        txn = order.transaction
        if isinstance(txn.payment_status, PaymentCompleted):
            raise AlreadySettledError()
        _ensure_not_terminal(order)

        txn.set_status(PaymentCompleted(
            amount_cents=order.total_price_cents,
            timestamp=timezone.now(),
            session_ref=f'cod-{order.id}',
        ))
        set_status(order, OrderStatus.COMPLETED, 'Cash on delivery payment received', manual=True)

    audit_log.info("cod settled order=%s by=%s amount_cents=%s", order.id, user.username, order.total_price_cents)
    return order
