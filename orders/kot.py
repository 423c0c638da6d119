"""Kitchen Order Ticket (KOT): the print-oriented view of an order for staff."""

from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from accounts.models import CustomerProfile
from accounts.permissions import require_admin
from finance.payment_status import PaymentCompleted

from .models import PaymentMethod
from .services import get_order


@dataclass(frozen=True)
class KotLine:
    name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self):
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class KitchenOrderTicket:
    order_id: int
    placed_at: datetime
    pickup_time: datetime | None
    customer_name: str | None
    customer_phone: str | None
    pickup_address: str | None
    lines: tuple[KotLine, ...]
    total_price_cents: int
    payment_method: str
    payment_label: str


def build_kot(order_id, user) -> KitchenOrderTicket:
    require_admin(user)
    order = get_order(order_id, user)
    profile = CustomerProfile.objects.filter(user_id=order.customer_id).first()

    return KitchenOrderTicket(
        order_id=order.id,
        placed_at=order.timestamp,
        pickup_time=order.pickup_time,
        customer_name=profile.name if profile else None,
        customer_phone=profile.phone_number if profile else None,
        pickup_address=profile.pickup_address if profile else None,
        lines=tuple(
            KotLine(name=item.product_name, quantity=item.quantity, unit_price_cents=item.unit_price_cents)
            for item in order.items.order_by('position')
        ),
        total_price_cents=order.total_price_cents,
        payment_method=PaymentMethod(order.payment_method).label,
        payment_label='Paid' if isinstance(order.payment_status, PaymentCompleted) else 'Pending',
    )


def _money(cents: int) -> str:
    return f"{cents // 100}.{cents % 100:02d}"


def _when(value) -> str:
    if value is None:
        return '-'
    return timezone.localtime(value).strftime('%Y-%m-%d %H:%M')


def render_kot_text(kot: KitchenOrderTicket, width: int = 40) -> str:
    rule = '-' * width
    rows = [
        'KITCHEN ORDER TICKET'.center(width),
        rule,
        f"Order #{kot.order_id}",
        f"Placed: {_when(kot.placed_at)}",
        f"Pickup: {_when(kot.pickup_time)}",
        rule,
        f"Customer: {kot.customer_name or '-'}",
        f"Phone: {kot.customer_phone or '-'}",
        f"Address: {kot.pickup_address or '-'}",
        rule,
    ]
    for line in kot.lines:
        left = f"{line.quantity} x {line.name}"
        right = _money(line.line_total_cents)
        rows.append(f"{left[:width - len(right) - 1]:<{width - len(right)}}{right}")
        rows.append(f"    @ {_money(line.unit_price_cents)}")
    rows += [
        rule,
        f"{'TOTAL':<{width - len(_money(kot.total_price_cents))}}{_money(kot.total_price_cents)}",
        f"Payment: {kot.payment_method} ({kot.payment_label})",
    ]
    return '\n'.join(rows) + '\n'
