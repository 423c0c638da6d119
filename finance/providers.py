"""Payment provider clients.

The broker only talks to a ``PaymentProvider``; ``StripeProvider`` is the
hosted-checkout implementation used in production, selected through
``settings.PAYMENT_PROVIDER``.
"""

import logging
from dataclasses import dataclass, field

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from core.exceptions import ProviderError

logger = logging.getLogger(__name__)

SESSION_PENDING = 'pending'
SESSION_COMPLETED = 'completed'
SESSION_FAILED = 'failed'


@dataclass(frozen=True)
class LineItem:
    name: str
    unit_amount_cents: int
    quantity: int


@dataclass(frozen=True)
class CheckoutSession:
    session_ref: str
    url: str


@dataclass(frozen=True)
class ProviderSessionStatus:
    """State reported by the provider plus the raw payload it came from."""

    state: str
    raw: dict = field(default_factory=dict)


class PaymentProvider:
    """Interface of a hosted-checkout payment provider."""

    def is_configured(self) -> bool:
        return True

    def create_checkout_session(self, items, success_url, failure_url, reference=None) -> CheckoutSession:
        raise NotImplementedError

    def get_session_status(self, session_id) -> ProviderSessionStatus:
        raise NotImplementedError


def _append_query(url: str, fragment: str) -> str:
    return f"{url}{'&' if '?' in url else '?'}{fragment}"


class StripeProvider(PaymentProvider):
    """Stripe Checkout over its REST API.

    Requests are form-encoded with bearer auth; any transport error,
    non-2xx response or undecodable body becomes ``ProviderError``.
    """

    def __init__(self, secret_key=None, api_base=None, currency=None, allowed_countries=None,
                 timeout=None, session=None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip('/')
        self.currency = currency or settings.STOREFRONT_CURRENCY
        self.allowed_countries = list(
            allowed_countries if allowed_countries is not None else settings.STRIPE_ALLOWED_COUNTRIES
        )
        self.timeout = timeout or settings.STRIPE_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def _request(self, method, path, data=None) -> dict:
        if not self.is_configured():
            raise ProviderError('Payment provider is not configured.')

        url = f"{self.api_base}/{path.lstrip('/')}"
        try:
            resp = self.session.request(
                method,
                url,
                data=data,
                headers={'Authorization': f'Bearer {self.secret_key}'},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("stripe %s %s failed: %s", method, path, exc)
            raise ProviderError(f'Payment provider unreachable: {exc}') from exc

        if not 200 <= resp.status_code < 300:
            logger.warning("stripe %s %s returned %s", method, path, resp.status_code)
            raise ProviderError(f'Payment provider returned HTTP {resp.status_code}.')

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderError('Payment provider returned an undecodable body.') from exc
        if not isinstance(payload, dict):
            raise ProviderError('Payment provider returned an unexpected payload.')
        return payload

    def create_checkout_session(self, items, success_url, failure_url, reference=None) -> CheckoutSession:
        data = {
            'mode': 'payment',
            'success_url': _append_query(success_url, 'session_id={CHECKOUT_SESSION_ID}'),
            'cancel_url': failure_url,
        }
        if reference is not None:
            data['client_reference_id'] = str(reference)
        for i, country in enumerate(self.allowed_countries):
            data[f'shipping_address_collection[allowed_countries][{i}]'] = country
        for i, item in enumerate(items):
            prefix = f'line_items[{i}]'
            data[f'{prefix}[quantity]'] = item.quantity
            data[f'{prefix}[price_data][currency]'] = self.currency
            data[f'{prefix}[price_data][unit_amount]'] = item.unit_amount_cents
            data[f'{prefix}[price_data][product_data][name]'] = item.name

        payload = self._request('POST', 'checkout/sessions', data=data)
        session_id = payload.get('id')
        url = payload.get('url')
        if not session_id or not url:
            raise ProviderError('Payment provider response is missing the session id or url.')
        return CheckoutSession(session_ref=session_id, url=url)

    def get_session_status(self, session_id) -> ProviderSessionStatus:
        payload = self._request('GET', f'checkout/sessions/{session_id}')
        if 'status' not in payload and 'payment_status' not in payload:
            raise ProviderError('Payment provider response has no session status.')

        if payload.get('payment_status') in ('paid', 'no_payment_required'):
            state = SESSION_COMPLETED
        elif payload.get('status') == 'expired':
            state = SESSION_FAILED
        else:
            state = SESSION_PENDING
        return ProviderSessionStatus(state=state, raw=payload)


def get_payment_provider() -> PaymentProvider:
    """Instantiate the provider class named by ``settings.PAYMENT_PROVIDER``."""
    return import_string(settings.PAYMENT_PROVIDER)()


def is_provider_configured() -> bool:
    return get_payment_provider().is_configured()
