from django.contrib import admin
from .models import StaffMember, AuditLog


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active']
    search_fields = ['name']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'action', 'entity', 'record_id', 'actor', 'created_at']
    list_filter = ['action', 'entity']
    search_fields = ['record_id']
    readonly_fields = ['action', 'entity', 'record_id', 'details', 'actor', 'created_at']
