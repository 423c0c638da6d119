"""DRF serializers for orders APIs."""

from rest_framework import serializers

from finance.payment_status import as_dict

from .models import Order, OrderItem, OrderStatus, PaymentMethod, TrackingEntry


class OrderItemSerializer(serializers.ModelSerializer):
    """Item snapshot captured at placement."""

    line_total_cents = serializers.ReadOnlyField()

    class Meta:
        model = OrderItem
        fields = ['position', 'product_id', 'product_name', 'unit_price_cents', 'quantity', 'line_total_cents']


class TrackingEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = TrackingEntry
        fields = ['sequence', 'status', 'note', 'timestamp', 'is_manual']


class OrderSerializer(serializers.ModelSerializer):
    """Order with items, timeline and the payment status variant.

    ``payment_status`` renders as ``{"state": ..., **fields}`` where the
    fields are those of the current variant only.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    tracking = TrackingEntrySerializer(source='tracking_entries', many=True, read_only=True)
    payment_status = serializers.SerializerMethodField()
    customer_username = serializers.ReadOnlyField(source='customer.username')

    class Meta:
        model = Order
        fields = [
            'id',
            'customer',
            'customer_username',
            'status',
            'payment_method',
            'payment_status',
            'total_price_cents',
            'pickup_time',
            'timestamp',
            'items',
            'tracking',
        ]
        read_only_fields = fields

    def get_payment_status(self, obj):
        return as_dict(obj.payment_status)


class PlaceOrderItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class PlaceOrderSerializer(serializers.Serializer):
    """Order placement payload.

    Without ``items`` the caller's cart is ordered.
    """

    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    pickup_time = serializers.DateTimeField(required=False, allow_null=True)
    items = PlaceOrderItemSerializer(many=True, required=False)


class CheckoutSessionRequestSerializer(serializers.Serializer):
    success_url = serializers.URLField()
    failure_url = serializers.URLField()


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(required=False, allow_blank=True, default='')


class AnnotationSerializer(serializers.Serializer):
    note = serializers.CharField()


class ForceCompleteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, default='')
