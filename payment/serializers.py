from decimal import Decimal

from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'bill', 'payment_method', 'amount', 'created_by', 'created_at']
        read_only_fields = fields


class TakePaymentSerializer(serializers.Serializer):
    """Serializer for taking payment"""
    payment_method = serializers.ChoiceField(
        choices=Payment.Method.choices,
        help_text="cash, card, bank_transfer or mobile_wallet"
    )
    amount_paid = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'),
        help_text="Amount tendered; must cover the bill total"
    )
