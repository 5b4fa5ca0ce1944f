"""
Management command to provision asset types and their treasury accounts.
"""
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger.models import Account, AssetType


class Command(BaseCommand):
    help = 'Initialize asset types and treasury accounts for the wallet ledger'

    ASSET_TYPES = [
        {'symbol': 'GOLD', 'name': 'Gold Coins'},
        {'symbol': 'DIAMOND', 'name': 'Diamonds'},
        {'symbol': 'LOYALTY', 'name': 'Loyalty Points'},
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--treasury-supply',
            default=settings.WALLET_TREASURY_INITIAL_SUPPLY,
            help='Initial balance of each newly created treasury account',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        """Create asset types and treasury accounts if they don't exist."""
        try:
            supply = Decimal(str(options['treasury_supply']))
        except InvalidOperation:
            raise CommandError(f"Invalid treasury supply: {options['treasury_supply']}")
        if supply < 0:
            raise CommandError('Treasury supply cannot be negative')

        treasury_owner = settings.WALLET_TREASURY_OWNER
        created_count = 0
        for asset_data in self.ASSET_TYPES:
            asset_type, created = AssetType.objects.get_or_create(
                symbol=asset_data['symbol'],
                defaults=asset_data
            )
            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'Created asset type: {asset_type}')
                )
            else:
                self.stdout.write(f'Asset type already exists: {asset_type}')

            treasury, created = Account.objects.get_or_create(
                owner=treasury_owner,
                asset_type=asset_type,
                defaults={
                    'kind': Account.KIND_SYSTEM,
                    'balance': supply,
                }
            )
            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(
                        f'Created treasury account for {asset_type.symbol} with supply {supply}'
                    )
                )
            elif not treasury.is_system:
                raise CommandError(
                    f'Account {treasury.id} owned by {treasury_owner} is not a system account'
                )
            else:
                self.stdout.write(
                    f'Treasury account already exists for {asset_type.symbol}: {treasury.balance}'
                )

        self.stdout.write(
            self.style.SUCCESS(
                f'\nInitialized {created_count} new record(s).'
            )
        )
