from django.contrib import admin
from .models import BusinessDay


@admin.register(BusinessDay)
class BusinessDayAdmin(admin.ModelAdmin):
    list_display = ['id', 'status', 'opened_at', 'opened_by', 'opening_cash', 'closed_at', 'cash_difference']
    list_filter = ['status', 'opened_at']
    readonly_fields = ['opened_at', 'closed_at', 'expected_cash', 'cash_difference']
