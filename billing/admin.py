from django.contrib import admin
from .models import Bill


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ['id', 'bill_number', 'session', 'subtotal', 'discount_amount', 'tax_amount',
                    'delivery_fee', 'total', 'is_paid']
    list_filter = ['is_paid', 'created_at']
    search_fields = ['bill_number']
    readonly_fields = ['created_at', 'updated_at', 'paid_at']
