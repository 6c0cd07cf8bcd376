from decimal import Decimal

from django.core.management.base import BaseCommand
from catalog.models import Category, MenuItem, ModifierGroup, Modifier


MENU = {
    "Hot Drinks": [
        {"name": "Turkish Coffee", "price": "3.50"},
        {"name": "Flat White", "price": "4.25"},
        {"name": "Mint Tea", "price": "2.75"},
    ],
    "Mains": [
        {"name": "Chicken Shawarma Plate", "price": "12.99"},
        {"name": "Koshari", "price": "8.50"},
        {"name": "Mixed Grill", "price": "18.00"},
    ],
    "Desserts": [
        {"name": "Om Ali", "price": "5.50"},
        {"name": "Basbousa", "price": "4.00"},
    ],
}

MODIFIER_GROUPS = [
    {
        "name": "Milk",
        "min_selections": 0,
        "max_selections": 1,
        "is_required": False,
        "items": ["Flat White"],
        "modifiers": [("Oat Milk", "0.50"), ("Almond Milk", "0.50")],
    },
    {
        "name": "Side",
        "min_selections": 1,
        "max_selections": 1,
        "is_required": True,
        "items": ["Chicken Shawarma Plate", "Mixed Grill"],
        "modifiers": [("Rice", "0.00"), ("Fries", "0.00"), ("Salad", "1.00")],
    },
]


class Command(BaseCommand):
    help = 'Seed the database with menu categories, items and modifier groups'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing modifier groups before seeding',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing modifier groups...')
            ModifierGroup.objects.all().delete()
            self.stdout.write(
                self.style.SUCCESS('Successfully cleared modifier groups')
            )

        created_items = []
        for sort_order, (category_name, items) in enumerate(MENU.items()):
            category, _ = Category.objects.get_or_create(
                name=category_name,
                defaults={'sort_order': sort_order}
            )
            for item_data in items:
                item, created = MenuItem.objects.get_or_create(
                    name=item_data['name'],
                    defaults={
                        'category': category,
                        'price': Decimal(item_data['price']),
                    }
                )
                if created:
                    created_items.append(item)
                    self.stdout.write(f"Created: {item.name} - {item.price}")
                else:
                    self.stdout.write(f"Already exists: {item.name}")

        for group_data in MODIFIER_GROUPS:
            group, created = ModifierGroup.objects.get_or_create(
                name=group_data['name'],
                defaults={
                    'min_selections': group_data['min_selections'],
                    'max_selections': group_data['max_selections'],
                    'is_required': group_data['is_required'],
                }
            )
            if created:
                for name, adjustment in group_data['modifiers']:
                    Modifier.objects.create(group=group, name=name, price_adjustment=Decimal(adjustment))
            group.menu_items.add(*MenuItem.objects.filter(name__in=group_data['items']))

        self.stdout.write(
            self.style.SUCCESS(f'\nTotal new menu items created: {len(created_items)}')
        )

        self.stdout.write("\nAll menu items in database:")
        self.stdout.write("-" * 50)
        for item in MenuItem.objects.select_related('category').order_by('category__sort_order', 'name'):
            category = item.category.name if item.category else '-'
            self.stdout.write(
                f"ID: {item.id:2d} | {item.name:25s} | {item.price:7.2f} | {category}"
            )
