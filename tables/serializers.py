from decimal import Decimal

from rest_framework import serializers
from .models import Table, Session


class TableBoardSerializer(serializers.ModelSerializer):
    occupied = serializers.BooleanField(read_only=True, help_text='True while an active session references the table')
    active_session_id = serializers.IntegerField(read_only=True, allow_null=True)
    pending_orders = serializers.IntegerField(read_only=True)

    class Meta:
        model = Table
        fields = ['id', 'table_number', 'capacity', 'qr_enabled', 'occupied',
                  'active_session_id', 'pending_orders']


class TableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Table
        fields = ['id', 'table_number', 'capacity', 'qr_enabled', 'is_active']


class SessionSerializer(serializers.ModelSerializer):
    table_number = serializers.CharField(source='table.table_number', read_only=True, default=None)

    class Meta:
        model = Session
        fields = ['id', 'business_day', 'table', 'table_number', 'order_type', 'status',
                  'customer_name', 'customer_phone', 'customer_address', 'guest_count',
                  'delivery_fee', 'opened_at', 'closed_at', 'created_by']
        read_only_fields = fields


class OpenDineInSerializer(serializers.Serializer):
    guest_count = serializers.IntegerField(min_value=1, help_text="Number of guests (minimum 1)")


class OpenTakeawaySerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)


class OpenDeliverySerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=100)
    customer_phone = serializers.CharField(max_length=30)
    customer_address = serializers.CharField()
    delivery_fee = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False,
        help_text="Delivery fee; defaults to the venue's standard fee"
    )
