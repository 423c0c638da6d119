"""Error kinds shared by the order, payment and admin services.

Each error is a DRF ``APIException`` so a service-layer raise reaches the
client with the right HTTP status without per-view translation.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class StorefrontError(APIException):
    """Base class for every domain error raised by the storefront services."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'
    default_code = 'storefront_error'


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class ForbiddenError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class EmptyCartError(StorefrontError):
    default_detail = 'Cart is empty.'
    default_code = 'empty_cart'


class PricingError(StorefrontError):
    """The catalog cannot price one of the requested items."""

    default_detail = 'One or more items are not available.'
    default_code = 'pricing_error'


class InvalidPaymentMethodError(StorefrontError):
    default_detail = 'Operation is not valid for this payment method.'
    default_code = 'invalid_payment_method'


class AlreadySettledError(StorefrontError):
    """Payment for the order was already completed.

    Callers that retried with the same session never see this; it is raised
    only when a different settlement is attempted on a paid order.
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Payment for this order is already settled.'
    default_code = 'already_settled'


class ProviderError(StorefrontError):
    """The external payment provider failed or returned an unusable payload."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Payment provider error.'
    default_code = 'provider_error'


class InvalidStateTransitionError(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_state_transition'


class AdminCredentialsError(StorefrontError):
    """Admin credential setup is in the wrong state for the request."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Admin credentials are not in a usable state.'
    default_code = 'admin_credentials'
