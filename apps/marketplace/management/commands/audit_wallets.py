from django.core.management.base import BaseCommand, CommandError

from apps.marketplace.models import Wallet
from apps.marketplace.services import notification_service, wallet_ledger
from apps.marketplace.services.utils import format_currency


class Command(BaseCommand):
    help = 'Replay every wallet ledger from the starting balance and compare it with the stored balance'

    def add_arguments(self, parser):
        parser.add_argument('--user', type=int, help='Only audit this user id')
        parser.add_argument(
            '--notify',
            action='store_true',
            help='Email the admins when a wallet is out of balance'
        )

    def handle(self, *args, **options):
        wallets = Wallet.objects.select_related('user').order_by('pk')
        if options['user'] is not None:
            wallets = wallets.filter(pk=options['user'])

        mismatched = []
        checked = 0
        for wallet in wallets:
            result = wallet_ledger.reconcile(wallet.pk)
            checked += 1

            if result.data['consistent']:
                self.stdout.write(f'  ✓ {wallet.user.email}: {format_currency(wallet.balance)}')
                continue

            mismatched.append(wallet.user.email)
            self.stdout.write(self.style.ERROR(
                f'  ✗ {wallet.user.email}: stored {format_currency(result.data["balance"])}, '
                f'ledger replays to {format_currency(result.data["replayed"])}'
            ))

        if mismatched:
            if options['notify']:
                notification_service.notify_admins(
                    'Univend wallet audit failed',
                    'These wallets do not reconcile with their ledger:\n' + '\n'.join(mismatched)
                )
            raise CommandError(f'{len(mismatched)} of {checked} wallet(s) out of balance')

        self.stdout.write(self.style.SUCCESS(f'\n✅ All {checked} wallet(s) reconcile'))
