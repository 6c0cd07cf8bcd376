"""
Read-only access to the menu.

Order intake and the public menu endpoint go through these functions rather
than querying catalog models directly, so availability rules live in one place.
"""
from django.db.models import Prefetch

from .models import Category, MenuItem, ModifierGroup, Modifier


def list_categories(active_only=True):
    categories = Category.objects.filter(deleted_at__isnull=True)
    if active_only:
        categories = categories.filter(is_active=True)
    return list(categories)


def _menu_items(active_only=True, available_only=True):
    items = MenuItem.objects.filter(deleted_at__isnull=True).select_related('category')
    if active_only:
        items = items.filter(is_active=True)
    if available_only:
        items = items.filter(is_available=True)
    return items


def list_menu_items(active_only=True, available_only=True):
    return list(_menu_items(active_only, available_only))


def list_modifier_groups_for_item(item_id):
    """Groups attached to a menu item, each with its active modifiers prefetched."""
    active_modifiers = Prefetch(
        'modifiers',
        queryset=Modifier.objects.filter(is_active=True).order_by('id'),
    )
    return list(
        ModifierGroup.objects.filter(menu_items__id=item_id)
        .prefetch_related(active_modifiers)
        .order_by('id')
    )


def resolve_menu_items(item_ids):
    """
    Map orderable menu item ids to their current rows.

    Ids that are missing, soft deleted, inactive or unavailable are simply
    absent from the result; callers decide how to report them.
    """
    return {item.id: item for item in _menu_items().filter(id__in=set(item_ids))}
