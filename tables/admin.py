from django.contrib import admin
from .models import Table, Session


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['id', 'table_number', 'capacity', 'qr_enabled', 'is_active', 'deleted_at']
    list_filter = ['qr_enabled', 'is_active']
    search_fields = ['table_number']


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'order_type', 'table', 'status', 'business_day', 'opened_at', 'closed_at']
    list_filter = ['order_type', 'status']
    search_fields = ['table__table_number', 'customer_name', 'customer_phone']
    readonly_fields = ['opened_at', 'closed_at']
