"""Orders API views.

Customers place, list and track their own orders and drive card checkout.
Administrators see every order and use the reconciliation actions, which
``IsStoreAdmin`` gates before the service layer checks the role again.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from accounts.permissions import IsStoreAdmin
from core.exceptions import ProviderError
from finance import reconciliation, state_machine
from finance.checkout import CheckoutBroker, SessionCompleted, SessionFailed
from products.views import StandardResultsSetPagination

from . import services
from .kot import build_kot, render_kot_text
from .models import Order
from .serializers import (
    AnnotationSerializer,
    CheckoutSessionRequestSerializer,
    ForceCompleteSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    StatusChangeSerializer,
    TrackingEntrySerializer,
)
from .tracking import get_tracking


ADMIN_ONLY = [permissions.IsAuthenticated, IsStoreAdmin]


def _session_state(observation):
    if isinstance(observation, SessionCompleted):
        return 'completed'
    if isinstance(observation, SessionFailed):
        return 'failed'
    return 'pending'


class OrderViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Order API endpoints for customers and administrators."""

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_method']
    ordering_fields = ['timestamp', 'total_price_cents']
    ordering = ['-timestamp', '-id']
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        """The caller's own orders, newest first."""
        if getattr(self, 'swagger_fake_view', False):
            return Order.objects.none()
        return services.orders_for_customer_queryset(self.request.user)

    def _order_response(self, order_id, status_code=status.HTTP_200_OK):
        order = services.get_order(order_id, self.request.user)
        return Response(self.get_serializer(order).data, status=status_code)

    def create(self, request, *args, **kwargs):
        """Place an order from explicit items, or from the cart when none are given."""
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if 'items' in data:
            items = [(item['product_id'], item['quantity']) for item in data['items']]
            order = services.place_order(
                request.user, items, data['payment_method'], data.get('pickup_time'),
            )
        else:
            order = services.place_order_from_cart(
                request.user, data['payment_method'], data.get('pickup_time'),
            )
        return self._order_response(order.id, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._order_response(pk)

    @action(detail=False, methods=['get'], url_path='all', permission_classes=ADMIN_ONLY)
    def all_orders(self, request):
        """Admin-only: every order, with the same filters and pagination."""
        orders = self.filter_queryset(services.all_orders_queryset(request.user))
        page = self.paginate_queryset(orders)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(orders, many=True).data)

    @action(detail=True, methods=['get'])
    def tracking(self, request, pk=None):
        entries = get_tracking(pk, request.user)
        return Response(TrackingEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=['post'], url_path='checkout-session')
    def checkout_session(self, request, pk=None):
        """Open a hosted checkout session for a card order."""
        serializer = CheckoutSessionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = CheckoutBroker().create_session(
            pk,
            request.user,
            serializer.validated_data['success_url'],
            serializer.validated_data['failure_url'],
        )
        return Response(
            {'session_ref': session.session_ref, 'url': session.url},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['get'], url_path='payment-status')
    def payment_status(self, request, pk=None):
        """Poll the provider once and apply a terminal result.

        Provider failures are reported as an inconclusive pending poll so the
        client simply polls again.
        """
        services.get_order(pk, request.user)
        session_id = (request.query_params.get('session_id') or '').strip()
        if not session_id:
            raise ValidationError({'session_id': 'This query parameter is required.'})

        broker = CheckoutBroker()
        body = {'inconclusive': False}
        try:
            observation = broker.poll_session_status(session_id)
        except ProviderError as exc:
            observation = None
            body.update(inconclusive=True, detail=str(exc.detail))
        else:
            broker.settle_from_observation(pk, session_id, observation)

        body['session_state'] = _session_state(observation)
        body['order'] = self.get_serializer(services.get_order(pk, request.user)).data
        return Response(body)

    @action(detail=True, methods=['post'], url_path='mark-cod-settled', permission_classes=ADMIN_ONLY)
    def mark_cod_settled(self, request, pk=None):
        order = state_machine.mark_cod_settled(pk, request.user)
        return self._order_response(order.id)

    @action(detail=True, methods=['post'], url_path='force-complete', permission_classes=ADMIN_ONLY)
    def force_complete(self, request, pk=None):
        serializer = ForceCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = reconciliation.force_complete(pk, request.user, serializer.validated_data['note'])
        return self._order_response(order.id)

    @action(detail=True, methods=['post'], url_path='set-status', permission_classes=ADMIN_ONLY)
    def set_status(self, request, pk=None):
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = reconciliation.set_order_status(
            pk, request.user, serializer.validated_data['status'], serializer.validated_data['note'],
        )
        return self._order_response(order.id)

    @action(detail=True, methods=['post'], permission_classes=ADMIN_ONLY)
    def annotate(self, request, pk=None):
        serializer = AnnotationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = reconciliation.annotate_tracking(pk, request.user, serializer.validated_data['note'])
        return self._order_response(order.id, status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], permission_classes=ADMIN_ONLY)
    def kot(self, request, pk=None):
        """Kitchen Order Ticket as structured data plus printable text."""
        kot = build_kot(pk, request.user)
        return Response({
            'order_id': kot.order_id,
            'placed_at': kot.placed_at,
            'pickup_time': kot.pickup_time,
            'customer_name': kot.customer_name,
            'customer_phone': kot.customer_phone,
            'pickup_address': kot.pickup_address,
            'items': [
                {
                    'name': line.name,
                    'quantity': line.quantity,
                    'unit_price_cents': line.unit_price_cents,
                    'line_total_cents': line.line_total_cents,
                }
                for line in kot.lines
            ],
            'total_price_cents': kot.total_price_cents,
            'payment_method': kot.payment_method,
            'payment_label': kot.payment_label,
            'text': render_kot_text(kot),
        })
