from decimal import Decimal

from rest_framework import serializers
from .models import Bill


class BillSerializer(serializers.ModelSerializer):
    order_type = serializers.CharField(source='session.order_type', read_only=True)
    table_number = serializers.CharField(source='session.table.table_number', read_only=True, default=None)

    class Meta:
        model = Bill
        fields = ['id', 'bill_number', 'session', 'order_type', 'table_number', 'subtotal',
                  'discount_amount', 'discount_percentage', 'tax_percentage', 'tax_amount',
                  'delivery_fee', 'total', 'is_paid', 'paid_at', 'paid_amount', 'change_amount',
                  'created_at', 'updated_at']
        read_only_fields = fields
        extra_kwargs = {
            'subtotal': {'help_text': 'Sum of printed and paid order lines'},
            'tax_amount': {'help_text': '(subtotal - discount) x tax rate, dine-in only'},
            'total': {'help_text': 'subtotal - discount + tax + delivery fee'},
        }


class UpsertBillSerializer(serializers.Serializer):
    discount_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False,
        help_text="Absolute discount; replaces any percentage discount"
    )
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'), required=False,
        help_text="Percentage discount; limited by the staff member's role"
    )
    delivery_fee = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False,
        help_text="Delivery fee (delivery sessions only)"
    )

    def validate(self, attrs):
        if 'discount_amount' in attrs and 'discount_percentage' in attrs:
            raise serializers.ValidationError("Give either discount_amount or discount_percentage, not both")
        return attrs
