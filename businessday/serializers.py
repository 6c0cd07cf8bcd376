from decimal import Decimal

from rest_framework import serializers
from .models import BusinessDay


class BusinessDaySerializer(serializers.ModelSerializer):
    opened_by_name = serializers.CharField(source='opened_by.name', read_only=True)

    class Meta:
        model = BusinessDay
        fields = ['id', 'status', 'opened_at', 'opened_by', 'opened_by_name', 'opening_cash',
                  'closed_at', 'closed_by', 'closing_cash', 'expected_cash', 'cash_difference']
        read_only_fields = fields
        extra_kwargs = {
            'expected_cash': {'help_text': 'Opening float; cash sales are not added'},
            'cash_difference': {'help_text': 'closing_cash minus expected_cash'},
        }


class OpenBusinessDaySerializer(serializers.Serializer):
    opening_cash = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'),
        help_text="Cash float in the drawer when the day opens"
    )


class CloseBusinessDaySerializer(serializers.Serializer):
    closing_cash = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'),
        help_text="Cash counted in the drawer at close"
    )
