"""Order tracking log.

``add_entry`` is the only writer and must run inside the transaction that
changes the order, so an entry becomes visible together with the change it
describes.
"""

from django.db.models import Max

from .models import TrackingEntry


def add_entry(order, status, note, manual=False) -> TrackingEntry:
    """Append an entry; the caller holds the order row lock."""
    last = order.tracking_entries.aggregate(last=Max('sequence'))['last'] or 0
    return TrackingEntry.objects.create(
        order=order,
        sequence=last + 1,
        status=status,
        note=note,
        is_manual=manual,
    )


def get_tracking(order_id, user) -> list[TrackingEntry]:
    """Entries of a visible order, oldest first."""
    from .services import get_order

    order = get_order(order_id, user)
    return list(order.tracking_entries.order_by('sequence'))
