from rest_framework import serializers
from .models import Order, OrderItem, OrderItemModifier


class OrderItemModifierSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='modifier.name', read_only=True)

    class Meta:
        model = OrderItemModifier
        fields = ['modifier', 'name', 'quantity', 'price_adjustment']


class OrderItemSerializer(serializers.ModelSerializer):
    menu_item_name = serializers.CharField(source='menu_item.name', read_only=True)
    modifiers = OrderItemModifierSerializer(many=True, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'menu_item', 'menu_item_name', 'quantity', 'unit_price',
                  'subtotal', 'notes', 'modifiers']
        extra_kwargs = {
            'unit_price': {'help_text': 'Catalog price when the order was submitted'},
            'subtotal': {'help_text': 'unit_price x quantity'},
        }


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    table_number = serializers.CharField(source='session.table.table_number', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'session', 'order_number', 'source', 'status', 'table_number', 'notes',
                  'created_at', 'accepted_at', 'rejected_at', 'rejection_reason', 'printed_at',
                  'cancelled_at', 'items']
        read_only_fields = fields


class QrOrderSubmissionSerializer(serializers.Serializer):
    tableNumber = serializers.CharField(max_length=20, help_text="Table number printed on the QR code")
    items = serializers.ListField(
        child=serializers.DictField(), allow_empty=True,
        help_text="Items as {menu_item_id, quantity, notes?, modifiers?}. Prices are set by the server."
    )
    clientRequestId = serializers.CharField(
        max_length=100, required=False, allow_blank=True, allow_null=True,
        help_text="Id generated per submission by the device; replays within 5 minutes are rejected"
    )


class ManualOrderSerializer(serializers.Serializer):
    items = serializers.ListField(
        child=serializers.DictField(), allow_empty=True,
        help_text="Items as {menu_item_id, quantity, notes?, modifiers?}"
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class RejectOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)
