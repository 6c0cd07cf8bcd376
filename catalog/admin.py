from django.contrib import admin
from .models import Category, MenuItem, ModifierGroup, Modifier


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'sort_order', 'is_active']
    list_filter = ['is_active']


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'category', 'price', 'is_active', 'is_available']
    search_fields = ['name']
    list_filter = ['is_active', 'is_available', 'category']


class ModifierInline(admin.TabularInline):
    model = Modifier
    extra = 0


@admin.register(ModifierGroup)
class ModifierGroupAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'min_selections', 'max_selections', 'is_required']
    filter_horizontal = ['menu_items']
    inlines = [ModifierInline]
