from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from .models import Category, MenuItem, ModifierGroup, Modifier
from . import reader


class CatalogReaderTests(TestCase):
    """Availability rules applied when reading the menu"""

    def setUp(self):
        self.category = Category.objects.create(name="Mains")
        self.available = MenuItem.objects.create(category=self.category, name="Koshari", price=Decimal('8.50'))
        self.sold_out = MenuItem.objects.create(
            category=self.category, name="Mixed Grill", price=Decimal('18.00'), is_available=False
        )
        self.deleted = MenuItem.objects.create(
            category=self.category, name="Old Dish", price=Decimal('5.00'), deleted_at=timezone.now()
        )

    def test_list_menu_items_hides_unavailable_and_deleted(self):
        """Only orderable items are listed by default"""
        self.assertEqual(reader.list_menu_items(), [self.available])

    def test_list_menu_items_can_include_unavailable(self):
        """Unavailable items are listed when asked for, deleted ones never"""
        items = reader.list_menu_items(available_only=False)
        self.assertIn(self.sold_out, items)
        self.assertNotIn(self.deleted, items)

    def test_resolve_menu_items_drops_unorderable_ids(self):
        """Missing and unavailable ids are absent from the mapping"""
        resolved = reader.resolve_menu_items([self.available.id, self.sold_out.id, 9999])
        self.assertEqual(list(resolved), [self.available.id])

    def test_inactive_categories_hidden(self):
        """Inactive categories are skipped unless requested"""
        Category.objects.create(name="Seasonal", is_active=False)
        self.assertEqual([c.name for c in reader.list_categories()], ["Mains"])
        self.assertEqual(len(reader.list_categories(active_only=False)), 2)

    def test_modifier_groups_only_carry_active_modifiers(self):
        """Inactive modifiers are not offered"""
        group = ModifierGroup.objects.create(name="Side", min_selections=1, max_selections=1, is_required=True)
        group.menu_items.add(self.available)
        rice = Modifier.objects.create(group=group, name="Rice")
        Modifier.objects.create(group=group, name="Fries", is_active=False)

        groups = reader.list_modifier_groups_for_item(self.available.id)

        self.assertEqual(groups, [group])
        self.assertEqual(list(groups[0].modifiers.all()), [rice])


class MenuAPITests(APITestCase):
    """Public menu endpoint"""

    def test_menu_is_public(self):
        """The QR page reads the menu without an API key"""
        category = Category.objects.create(name="Desserts")
        MenuItem.objects.create(category=category, name="Om Ali", price=Decimal('5.50'))

        response = self.client.get(reverse('menu'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['categories'][0]['name'], "Desserts")
        self.assertEqual(response.data['items'][0]['name'], "Om Ali")
        self.assertEqual(response.data['items'][0]['modifier_groups'], [])
