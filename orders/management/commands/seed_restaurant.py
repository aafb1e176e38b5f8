from django.core.management.base import BaseCommand
from orders.models import Restaurant, Table, MenuItem


class Command(BaseCommand):
    help = 'Seed the database with the default restaurant, its tables and menu'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing menu items before seeding',
        )
        parser.add_argument(
            '--tables',
            type=int,
            default=12,
            help='Number of tables to create (default: 12)',
        )

    def handle(self, *args, **options):
        restaurant = Restaurant.get_default()
        if not restaurant.address:
            restaurant.name = 'Fine Dining Restaurant'
            restaurant.address = '123 Gourmet Street, Cairo, Egypt'
            restaurant.phone = '+20 2 1234 5678'
            restaurant.email = 'info@finedining.com'
            restaurant.save()
        self.stdout.write(
            f"Restaurant: {restaurant.name} (tax {restaurant.tax_rate}, service {restaurant.service_charge_rate})"
        )

        if options['clear']:
            self.stdout.write('Clearing existing menu items...')
            MenuItem.objects.filter(restaurant=restaurant, orderitem__isnull=True).delete()
            self.stdout.write(
                self.style.SUCCESS('Successfully cleared unreferenced menu items')
            )

        for number in range(1, options['tables'] + 1):
            Table.objects.get_or_create(
                restaurant=restaurant,
                number=str(number),
                defaults={'capacity': 4}
            )
        self.stdout.write(f"Tables 1-{options['tables']} ready")

        menu_items = [
            {"name": "Lobster Bisque", "category": "Appetizers", "price_p": 102400},
            {"name": "Caesar Salad", "category": "Appetizers", "price_p": 68000},
            {"name": "Filet Mignon", "category": "Main Course", "price_p": 245000},
            {"name": "Grilled Salmon", "category": "Main Course", "price_p": 189000},
            {"name": "Mushroom Risotto", "category": "Main Course", "price_p": 132000},
            {"name": "Fresh Lemonade", "category": "Beverages", "price_p": 22000},
            {"name": "Espresso", "category": "Beverages", "price_p": 15000},
            {"name": "Chocolate Lava Cake", "category": "Desserts", "price_p": 48000},
        ]

        # Create menu items
        created_items = []
        for sort_order, item_data in enumerate(menu_items, start=1):
            item, created = MenuItem.objects.get_or_create(
                restaurant=restaurant,
                name=item_data['name'],
                defaults={
                    'category': item_data['category'],
                    'price_p': item_data['price_p'],
                    'sort_order': sort_order,
                }
            )
            if created:
                created_items.append(item)
                self.stdout.write(
                    f"Created: {item.name} - EGP {item.price_p/100:.2f} ({item.category})"
                )
            else:
                self.stdout.write(
                    f"Already exists: {item.name}"
                )

        self.stdout.write(
            self.style.SUCCESS(f'\nTotal new menu items created: {len(created_items)}')
        )

        self.stdout.write("\nAll menu items in database:")
        self.stdout.write("-" * 60)
        for item in MenuItem.objects.filter(restaurant=restaurant):
            self.stdout.write(
                f"ID: {item.id:2d} | {item.category:12s} | {item.name:20s} | EGP {item.price_p/100:8.2f}"
            )
