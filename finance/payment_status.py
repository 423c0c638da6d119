"""Payment status of an order as a discriminated variant.

Each variant carries only its own fields. ``to_record``/``from_record`` map a
variant to and from the ``(state, details)`` pair stored on ``Transaction``.
"""

from dataclasses import dataclass
from datetime import datetime

from django.utils.dateparse import parse_datetime

PENDING = 'pending'
COMPLETED = 'completed'
FAILED = 'failed'

STATE_CHOICES = [
    (PENDING, 'Pending'),
    (COMPLETED, 'Completed'),
    (FAILED, 'Failed'),
]


@dataclass(frozen=True)
class PaymentPending:
    state = PENDING


@dataclass(frozen=True)
class PaymentCompleted:
    amount_cents: int
    timestamp: datetime
    session_ref: str

    state = COMPLETED


@dataclass(frozen=True)
class PaymentFailed:
    reason: str

    state = FAILED


PaymentStatus = PaymentPending | PaymentCompleted | PaymentFailed


def to_record(status: PaymentStatus) -> tuple[str, dict]:
    if isinstance(status, PaymentCompleted):
        return COMPLETED, {
            'amount_cents': status.amount_cents,
            'timestamp': status.timestamp.isoformat(),
            'session_ref': status.session_ref,
        }
    if isinstance(status, PaymentFailed):
        return FAILED, {'reason': status.reason}
    if isinstance(status, PaymentPending):
        return PENDING, {}
    raise TypeError(f'Unknown payment status {status!r}')


def from_record(state: str, details: dict | None) -> PaymentStatus:
    details = details or {}
    if state == COMPLETED:
        return PaymentCompleted(
            amount_cents=int(details['amount_cents']),
            timestamp=parse_datetime(details['timestamp']),
            session_ref=details['session_ref'],
        )
    if state == FAILED:
        return PaymentFailed(reason=details.get('reason', ''))
    if state == PENDING:
        return PaymentPending()
    raise ValueError(f'Unknown payment state {state!r}')


def as_dict(status: PaymentStatus) -> dict:
    """JSON-friendly form used by the API (``{"state": ..., **fields}``)."""
    state, details = to_record(status)
    return {'state': state, **details}
