from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from apps.marketplace.models import DELIVERY, PICKUP, Product
from apps.marketplace.services import wallet_ledger


class Command(BaseCommand):
    help = 'Create demo buyer, vendor and rider accounts and a product in every category for Univend'

    def add_arguments(self, parser):
        parser.add_argument('--university', default='Kaduna State University')
        parser.add_argument('--password', default='univend-demo')

    def handle(self, *args, **options):
        university = options['university']
        password = options['password']

        User = get_user_model()

        accounts = {
            'buyer': ('buyer@univend.test', 'Demo Buyer', 'Hall 3, Room 12'),
            'vendor': ('vendor@univend.test', 'Demo Vendor', ''),
            'rider': ('rider@univend.test', 'Demo Rider', ''),
        }

        users = {}
        for role, (email, name, address) in accounts.items():
            user, created = User.objects.get_or_create(
                email=email,
                defaults={
                    'username': name,
                    'role': role,
                    'university': university,
                    'address': address,
                }
            )
            if created:
                user.set_password(password)
                user.save()
                self.stdout.write(self.style.SUCCESS(f'✓ Created {role}: {email}'))
            else:
                self.stdout.write(self.style.WARNING(f'- {role.capitalize()} already exists: {email}'))

            wallet_ledger.get_or_create_wallet(user.pk)
            users[role] = user

        # One product per category, alternating which methods are offered
        products_data = [
            ('fashion', 'Thrift denim jacket', 8000),
            ('electronics', 'Used power bank 20,000mAh', 12000),
            ('food', 'Jollof rice combo', 2500),
            ('beauty', 'Shea butter body cream', 3000),
            ('stationery', 'CSC 201 past questions', 1500),
            ('home', 'Reading lamp', 6000),
            ('sports', 'Football (size 5)', 7000),
            ('services', 'Laptop screen repair', 15000),
            ('events', 'Departmental dinner ticket', 5000),
            ('misc', 'Campus hoodie', 10000),
        ]

        created_count = 0
        for index, (category, title, price) in enumerate(products_data):
            methods = [DELIVERY, PICKUP] if index % 2 == 0 else [PICKUP]
            product, created = Product.objects.get_or_create(
                vendor=users['vendor'],
                title=title,
                defaults={
                    'category': category,
                    'price': price,
                    'university': university,
                    'delivery_methods': methods,
                    'description': f'Demo {category} listing.',
                }
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'  ✓ Created product: {title}'))

        self.stdout.write(self.style.SUCCESS(
            f'\n✅ Done! {created_count} new product(s); password for demo accounts: {password}'
        ))
