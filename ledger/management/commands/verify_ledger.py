"""
Management command to check the ledger against its double-entry invariants.
"""
from django.core.management.base import BaseCommand, CommandError

from ledger.models import Account, Transaction
from read_models.projections import derive_balance


class Command(BaseCommand):
    help = 'Verify that every transaction balances and every cached balance matches the ledger'

    def handle(self, *args, **options):
        problems = []

        transactions = Transaction.objects.prefetch_related('entries')
        for trans in transactions.iterator(chunk_size=500):
            if not trans.verify_entries():
                problems.append(f'Transaction {trans.id} ({trans.idempotency_key}) does not balance')

        accounts = Account.objects.select_related('asset_type').order_by('owner', 'asset_type__symbol')
        for account in accounts:
            derived = derive_balance(account)
            if account.is_system:
                # Treasuries carry their provisioned supply on top of ledger activity
                self.stdout.write(
                    f'Treasury {account.asset_type.symbol}: balance {account.balance}, '
                    f'provisioned supply {account.balance - derived}'
                )
            elif derived != account.balance:
                problems.append(
                    f'Account {account.owner}/{account.asset_type.symbol}: '
                    f'cached {account.balance} != ledger {derived}'
                )

        if problems:
            for problem in problems:
                self.stderr.write(problem)
            raise CommandError(f'{len(problems)} ledger invariant violation(s) found')

        self.stdout.write(self.style.SUCCESS('Ledger is consistent.'))
