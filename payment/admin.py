from django.contrib import admin
from .models import Payment

# Register your models here.
@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'bill', 'payment_method', 'amount', 'business_day', 'created_at']
    list_filter = ['payment_method', 'created_at']
    search_fields = ['bill__bill_number', 'bill__session__table__table_number']
    readonly_fields = ['created_at']
