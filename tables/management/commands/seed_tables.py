from django.core.management.base import BaseCommand
from tables.models import Table


class Command(BaseCommand):
    help = 'Create numbered dining tables'

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=12, help='Number of tables to create')
        parser.add_argument('--capacity', type=int, default=4, help='Seats per table')

    def handle(self, *args, **options):
        created = 0
        for number in range(1, options['count'] + 1):
            _, was_created = Table.objects.get_or_create(
                table_number=str(number),
                defaults={'capacity': options['capacity']}
            )
            created += was_created

        self.stdout.write(self.style.SUCCESS(f'Tables created: {created}'))
