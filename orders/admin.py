from django.contrib import admin
from .models import Order, OrderItem, OrderItemModifier


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['menu_item', 'quantity', 'unit_price', 'subtotal', 'notes']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'order_number', 'source', 'status', 'session', 'created_at', 'printed_at']
    list_filter = ['source', 'status', 'created_at']
    search_fields = ['order_number', 'session__table__table_number']
    readonly_fields = ['created_at', 'accepted_at', 'rejected_at', 'printed_at', 'cancelled_at', 'source_ip']
    inlines = [OrderItemInline]


@admin.register(OrderItemModifier)
class OrderItemModifierAdmin(admin.ModelAdmin):
    list_display = ['order_item', 'modifier', 'quantity', 'price_adjustment']
