"""Checkout session broker.

Opens a hosted checkout session for a card order and turns the provider's
view of that session into payment state machine events. The broker keeps no
memory between requests; settling the same observation twice is safe because
``mark_completed`` is idempotent per session.
"""

import logging
import time
from dataclasses import dataclass, field

from django.conf import settings

from core.exceptions import (
    AlreadySettledError,
    InvalidPaymentMethodError,
    InvalidStateTransitionError,
    ProviderError,
)
from orders.models import OrderStatus
from orders.services import get_order

from . import state_machine
from .payment_status import PaymentCompleted, PaymentFailed
from .providers import (
    SESSION_COMPLETED,
    SESSION_FAILED,
    LineItem,
    get_payment_provider,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    """How long and how often ``await_settlement`` polls."""

    interval_seconds: float = 2.0
    timeout_seconds: float = 120.0
    max_attempts: int | None = None

    @classmethod
    def from_settings(cls):
        return cls(
            interval_seconds=settings.CHECKOUT_POLL_INTERVAL_SECONDS,
            timeout_seconds=settings.CHECKOUT_POLL_TIMEOUT_SECONDS,
            max_attempts=settings.CHECKOUT_POLL_MAX_ATTEMPTS,
        )


@dataclass(frozen=True)
class SessionPending:
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SessionCompleted:
    amount_cents: int
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SessionFailed:
    reason: str
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PollOutcome:
    resolved: bool
    attempts: int
    status: SessionPending | SessionCompleted | SessionFailed | None = None
    order: object = None


def _amount_total(raw: dict) -> int:
    amount = raw.get('amount_total')
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ProviderError('Payment provider reported a missing or malformed amount_total.')
    return amount


class CheckoutBroker:
    """Creates and polls provider checkout sessions for card orders."""

    def __init__(self, provider=None, sleep=time.sleep, clock=time.monotonic):
        self.provider = provider or get_payment_provider()
        self._sleep = sleep
        self._clock = clock

    def create_session(self, order_id, user, success_url, failure_url):
        """Open a checkout session for a visible, unpaid card order.

        A failed payment is reopened to pending first. ``ProviderError`` from
        the provider reaches the caller unchanged.
        """
        order = get_order(order_id, user)
        if order.is_cash_on_delivery:
            raise InvalidPaymentMethodError('Cash on delivery orders do not use online checkout.')

        payment = order.payment_status
        if isinstance(payment, PaymentCompleted):
            raise AlreadySettledError()
        if order.status != OrderStatus.PENDING:
            raise InvalidStateTransitionError(f'Order {order.id} is {order.status}.')
        if isinstance(payment, PaymentFailed):
            order = state_machine.reopen_for_retry(order.id)

        items = [
            LineItem(name=item.product_name, unit_amount_cents=item.unit_price_cents, quantity=item.quantity)
            for item in order.items.order_by('position')
        ]
        session = self.provider.create_checkout_session(
            items, success_url, failure_url, reference=str(order.id),
        )
        state_machine.attach_session(order.id, session.session_ref)
        logger.info("checkout session %s opened for order %s", session.session_ref, order.id)
        return session

    def poll_session_status(self, session_ref):
        """Ask the provider once; malformed payloads raise ``ProviderError``."""
        status = self.provider.get_session_status(session_ref)
        raw = status.raw or {}
        if status.state == SESSION_COMPLETED:
            return SessionCompleted(amount_cents=_amount_total(raw), raw=raw)
        if status.state == SESSION_FAILED:
            reason = raw.get('status') or 'failed'
            return SessionFailed(reason=f'Checkout session {reason}', raw=raw)
        return SessionPending(raw=raw)

    def settle_from_observation(self, order_id, session_ref, status):
        """Apply one terminal observation to the order; pending is a no-op."""
        reference = (status.raw or {}).get('client_reference_id')
        if reference is not None and str(reference) != str(order_id):
            raise ProviderError(f'Checkout session {session_ref} does not belong to order {order_id}.')

        if isinstance(status, SessionCompleted):
            return state_machine.mark_completed(order_id, session_ref, status.amount_cents)
        if isinstance(status, SessionFailed):
            return state_machine.mark_failed(order_id, status.reason, session_ref=session_ref)
        return None

    def await_settlement(self, order_id, session_ref, policy=None) -> PollOutcome:
        """Poll until the session resolves, the timeout passes or attempts run out.

        A poll that raises ``ProviderError`` is inconclusive and retried on the
        next tick. Abandoning the poll leaves the order untouched.
        """
        policy = policy or PollPolicy.from_settings()
        deadline = self._clock() + policy.timeout_seconds
        attempts = 0

        while True:
            attempts += 1
            try:
                status = self.poll_session_status(session_ref)
            except ProviderError as exc:
                logger.warning("poll %s for order %s inconclusive: %s", attempts, order_id, exc.detail)
                status = None

            if isinstance(status, (SessionCompleted, SessionFailed)):
                order = self.settle_from_observation(order_id, session_ref, status)
                return PollOutcome(resolved=True, attempts=attempts, status=status, order=order)

            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                break
            if self._clock() + policy.interval_seconds > deadline:
                break
            self._sleep(policy.interval_seconds)

        logger.info("abandoned polling session %s for order %s after %s attempts", session_ref, order_id, attempts)
        return PollOutcome(resolved=False, attempts=attempts, status=status)
