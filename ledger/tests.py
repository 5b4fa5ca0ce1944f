"""
Tests for Ledger Models, Resolvers and the Transaction Engine

Tests cover:
- Double-entry bookkeeping invariants
- Immutability guarantees
- Idempotent replay
- Balance validation and rollback
- Concurrency safety (PostgreSQL only)
"""

import dataclasses
import threading
import unittest
from decimal import Decimal
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import OperationalError, connection
from django.test import TestCase, TransactionTestCase

from ledger.exceptions import (
    InsufficientBalance,
    InvalidRequest,
    NoWalletsFound,
    TransientStorageFailure,
    TreasuryMissing,
    UnknownAsset,
)
from ledger.models import Account, AssetType, LedgerEntry, Transaction
from ledger.resolvers import (
    TRANSACTION_ROLES,
    resolve_asset,
    resolve_roles,
    resolve_treasury_account,
    resolve_user_account,
)
from ledger.services import LedgerService, normalize_amount
from read_models import projections

TREASURY_SUPPLY = Decimal('1000000')


def provision_wallets():
    call_command('init_wallets', stdout=StringIO())


def gold_treasury():
    return Account.objects.get(owner='treasury', asset_type__symbol='GOLD')


class LedgerModelTests(TestCase):
    """Test ledger models."""

    def setUp(self):
        provision_wallets()

    def test_asset_symbol_is_stored_upper_case(self):
        asset = AssetType.objects.create(symbol=' silver ', name='Silver')
        asset.refresh_from_db()
        self.assertEqual(asset.symbol, 'SILVER')

    def test_transaction_has_balanced_entries(self):
        """Test that every transaction carries one debit and one credit of equal amount."""
        result = LedgerService.topup('user_1', 'GOLD', Decimal('100'), 'model_txn_001')

        trans = Transaction.objects.get(pk=result.id)
        self.assertEqual(trans.status, Transaction.STATUS_COMPLETED)
        self.assertEqual(trans.entries.count(), 2)
        self.assertTrue(trans.verify_entries())

        debit = trans.entries.get(entry_type=LedgerEntry.ENTRY_DEBIT)
        credit = trans.entries.get(entry_type=LedgerEntry.ENTRY_CREDIT)
        self.assertEqual(debit.account_id, trans.source_account_id)
        self.assertEqual(credit.account_id, trans.destination_account_id)
        self.assertEqual(debit.amount, credit.amount)

    def test_ledger_entry_immutability(self):
        """Test that ledger entries cannot be updated."""
        result = LedgerService.topup('user_1', 'GOLD', Decimal('100'), 'model_txn_002')
        entry = LedgerEntry.objects.filter(transaction_id=result.id).first()

        # Try to update
        with self.assertRaises(ValueError):
            entry.amount = Decimal('200')
            entry.save()

        # Try to delete
        with self.assertRaises(ValueError):
            entry.delete()

    def test_record_rejects_overdraft(self):
        treasury = gold_treasury()
        user = resolve_user_account('user_1', treasury.asset_type_id)

        with self.assertRaises(ValueError):
            Transaction.record(
                idempotency_key='model_txn_003',
                transaction_type=Transaction.TYPE_SPEND,
                amount=Decimal('1'),
                asset_type_id=treasury.asset_type_id,
                source=user,
                destination=treasury,
            )
        self.assertFalse(Transaction.objects.filter(idempotency_key='model_txn_003').exists())

    def test_verify_entries_detects_missing_entry(self):
        result = LedgerService.topup('user_1', 'GOLD', Decimal('5'), 'model_txn_004')
        trans = Transaction.objects.get(pk=result.id)
        # QuerySet.delete() bypasses the model-level guard, as raw SQL would
        LedgerEntry.objects.filter(
            transaction=trans, entry_type=LedgerEntry.ENTRY_CREDIT
        ).delete()
        self.assertFalse(trans.verify_entries())


class ResolverTests(TestCase):
    """Test asset and account resolution."""

    def setUp(self):
        provision_wallets()
        self.gold_id = AssetType.objects.get(symbol='GOLD').id

    def test_resolve_asset_is_case_insensitive(self):
        self.assertEqual(resolve_asset('gold'), self.gold_id)
        self.assertEqual(resolve_asset('GoLd'), self.gold_id)

    def test_resolve_unknown_asset(self):
        with self.assertRaises(UnknownAsset):
            resolve_asset('SILVER')

    def test_user_account_is_created_lazily_with_zero_balance(self):
        self.assertFalse(Account.objects.filter(owner='new_user').exists())

        account = resolve_user_account('new_user', self.gold_id)

        self.assertEqual(account.kind, Account.KIND_USER)
        self.assertEqual(account.balance, Decimal('0'))
        self.assertEqual(resolve_user_account('new_user', self.gold_id).id, account.id)
        self.assertEqual(Account.objects.filter(owner='new_user').count(), 1)

    def test_concurrent_account_creation_rereads_existing_row(self):
        """A duplicate insert rejected by the unique constraint is not an error."""
        existing = Account.objects.create(owner='racer', asset_type_id=self.gold_id)

        # The first lookup misses as if the other request had not committed yet
        with mock.patch.object(
            Account.objects, 'get',
            side_effect=[Account.DoesNotExist, existing]
        ):
            account = resolve_user_account('racer', self.gold_id)

        self.assertEqual(account.id, existing.id)
        self.assertEqual(Account.objects.filter(owner='racer').count(), 1)

    def test_treasury_owner_is_reserved(self):
        with self.assertRaises(InvalidRequest):
            resolve_user_account('treasury', self.gold_id)

    def test_resolve_treasury_account(self):
        treasury = resolve_treasury_account(self.gold_id)
        self.assertEqual(treasury.kind, Account.KIND_SYSTEM)
        self.assertEqual(treasury.balance, TREASURY_SUPPLY)

    def test_missing_treasury_is_a_configuration_fault(self):
        silver = AssetType.objects.create(symbol='SILVER', name='Silver')
        with self.assertRaises(TreasuryMissing):
            resolve_treasury_account(silver.id)

    def test_role_mapping(self):
        user = resolve_user_account('user_1', self.gold_id)
        treasury = resolve_treasury_account(self.gold_id)

        self.assertEqual(resolve_roles('topup', user, treasury), (treasury, user))
        self.assertEqual(resolve_roles('bonus', user, treasury), (treasury, user))
        self.assertEqual(resolve_roles('spend', user, treasury), (user, treasury))
        self.assertEqual(set(TRANSACTION_ROLES), {'topup', 'bonus', 'spend'})

        with self.assertRaises(InvalidRequest):
            resolve_roles('refund', user, treasury)


class NormalizeAmountTests(TestCase):

    def test_accepts_numbers_and_numeric_strings(self):
        self.assertEqual(normalize_amount(10), Decimal('10'))
        self.assertEqual(normalize_amount('12.5'), Decimal('12.5'))
        self.assertEqual(normalize_amount(0.1), Decimal('0.1'))
        self.assertEqual(normalize_amount(Decimal('0.0001')), Decimal('0.0001'))

    def test_rejects_invalid_amounts(self):
        for amount in [0, -1, '-0.5', 'abc', '', None, True, 'NaN', 'Infinity', '1.00001', '1e20']:
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidRequest):
                    normalize_amount(amount)


class LedgerServiceTests(TestCase):
    """Test the transaction engine."""

    def setUp(self):
        provision_wallets()

    def balance_of(self, owner, symbol='GOLD'):
        return Account.objects.get(owner=owner, asset_type__symbol=symbol).balance

    def test_wallet_lifecycle_scenario(self):
        # Fresh user tops up 500
        result = LedgerService.topup('fresh_user', 'GOLD', 500, 'k1')
        self.assertFalse(result.replayed)
        self.assertEqual(result.type, 'topup')
        self.assertEqual(result.status, 'completed')
        self.assertEqual(result.asset, 'GOLD')
        self.assertEqual(result.amount, Decimal('500'))
        self.assertEqual(result.balance_after, Decimal('500'))
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertEqual(LedgerEntry.objects.count(), 2)

        # Replay with a different amount returns the original result
        replay = LedgerService.topup('fresh_user', 'GOLD', 999, 'k1')
        self.assertTrue(replay.replayed)
        self.assertEqual(dataclasses.replace(replay, replayed=False), result)
        self.assertEqual(self.balance_of('fresh_user'), Decimal('500'))

        # Overspend fails and leaves the balance alone
        with self.assertRaises(InsufficientBalance):
            LedgerService.spend('fresh_user', 'GOLD', 600, 'k2')
        self.assertEqual(self.balance_of('fresh_user'), Decimal('500'))
        self.assertFalse(Transaction.objects.filter(idempotency_key='k2').exists())

        # Spending everything succeeds and credits the treasury
        spent = LedgerService.spend('fresh_user', 'GOLD', 500, 'k3')
        self.assertEqual(spent.balance_after, Decimal('0'))
        self.assertEqual(self.balance_of('fresh_user'), Decimal('0'))
        self.assertEqual(gold_treasury().balance, TREASURY_SUPPLY)

    def test_value_is_conserved(self):
        LedgerService.topup('user_1', 'GOLD', '250.5', 'conserve_0')
        cases = [
            ('topup', '10'),
            ('bonus', '0.0001'),
            ('spend', '100.25'),
            ('topup', '33.3333'),
            ('spend', '1'),
        ]
        for index, (transaction_type, amount) in enumerate(cases):
            with self.subTest(transaction_type=transaction_type, amount=amount):
                before = self.balance_of('user_1') + gold_treasury().balance
                LedgerService.process(transaction_type, 'user_1', 'GOLD', amount, f'conserve_{index + 1}')
                after = self.balance_of('user_1') + gold_treasury().balance
                self.assertEqual(before, after)

    def test_replay_performs_no_mutation(self):
        original = LedgerService.bonus('user_1', 'GOLD', '75', 'replay_001', reference_id='promo-1')
        snapshot = (
            Transaction.objects.count(),
            LedgerEntry.objects.count(),
            self.balance_of('user_1'),
            gold_treasury().balance,
        )

        for _ in range(3):
            replay = LedgerService.bonus('user_1', 'GOLD', '75', 'replay_001')
            self.assertTrue(replay.replayed)
            self.assertEqual(dataclasses.replace(replay, replayed=False), original)

        self.assertEqual(snapshot, (
            Transaction.objects.count(),
            LedgerEntry.objects.count(),
            self.balance_of('user_1'),
            gold_treasury().balance,
        ))

    def test_idempotency_key_is_global(self):
        first = LedgerService.topup('user_1', 'GOLD', '10', 'shared_key')
        other = LedgerService.topup('user_2', 'DIAMOND', '20', 'shared_key')
        self.assertTrue(other.replayed)
        self.assertEqual(other.id, first.id)
        self.assertFalse(Account.objects.filter(owner='user_2').exists())

    def test_spend_replay_reports_user_balance(self):
        LedgerService.topup('user_1', 'GOLD', '100', 'spend_replay_1')
        spent = LedgerService.spend('user_1', 'GOLD', '40', 'spend_replay_2')
        LedgerService.topup('user_1', 'GOLD', '1000', 'spend_replay_3')

        replay = LedgerService.spend('user_1', 'GOLD', '40', 'spend_replay_2')
        self.assertEqual(replay.balance_after, Decimal('60'))
        self.assertEqual(replay.balance_after, spent.balance_after)

    def test_insufficient_balance_creates_no_rows(self):
        LedgerService.topup('user_1', 'GOLD', '10', 'insufficient_1')

        with self.assertRaises(InsufficientBalance) as ctx:
            LedgerService.spend('user_1', 'GOLD', '10.0001', 'insufficient_2')

        self.assertEqual(ctx.exception.balance, Decimal('10'))
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertEqual(LedgerEntry.objects.count(), 2)
        self.assertEqual(self.balance_of('user_1'), Decimal('10'))

    def test_spend_from_new_account_fails_without_leaving_transaction(self):
        with self.assertRaises(InsufficientBalance):
            LedgerService.spend('nobody', 'GOLD', '1', 'spend_new_001')
        self.assertEqual(Transaction.objects.count(), 0)
        self.assertFalse(Account.objects.filter(owner='nobody').exists())

    def test_entries_follow_role_mapping(self):
        LedgerService.topup('user_1', 'GOLD', '50', 'roles_1')
        LedgerService.bonus('user_1', 'GOLD', '5', 'roles_2')
        LedgerService.spend('user_1', 'GOLD', '20', 'roles_3')

        user = Account.objects.get(owner='user_1', asset_type__symbol='GOLD')
        treasury = gold_treasury()
        for trans in Transaction.objects.all():
            with self.subTest(type=trans.type):
                self.assertTrue(trans.verify_entries())
                debit = trans.entries.get(entry_type=LedgerEntry.ENTRY_DEBIT)
                credit = trans.entries.get(entry_type=LedgerEntry.ENTRY_CREDIT)
                if trans.type == Transaction.TYPE_SPEND:
                    self.assertEqual((debit.account_id, credit.account_id), (user.id, treasury.id))
                else:
                    self.assertEqual((debit.account_id, credit.account_id), (treasury.id, user.id))

    def test_balance_after_tracks_each_entry(self):
        LedgerService.topup('user_1', 'GOLD', '50', 'after_1')
        result = LedgerService.spend('user_1', 'GOLD', '20', 'after_2')

        debit = LedgerEntry.objects.get(transaction_id=result.id, entry_type=LedgerEntry.ENTRY_DEBIT)
        credit = LedgerEntry.objects.get(transaction_id=result.id, entry_type=LedgerEntry.ENTRY_CREDIT)
        self.assertEqual(debit.balance_after, Decimal('30'))
        self.assertEqual(credit.balance_after, TREASURY_SUPPLY - Decimal('30'))

    def test_lowercase_asset_symbol(self):
        result = LedgerService.topup('user_1', 'diamond', '3', 'lower_001')
        self.assertEqual(result.asset, 'DIAMOND')
        self.assertEqual(self.balance_of('user_1', 'DIAMOND'), Decimal('3'))

    def test_reference_and_metadata_are_stored(self):
        result = LedgerService.topup(
            'user_1', 'LOYALTY', '8', 'meta_001',
            reference_id='order-42', metadata={'channel': 'web'}
        )
        trans = Transaction.objects.get(pk=result.id)
        self.assertEqual(trans.reference_id, 'order-42')
        self.assertEqual(trans.metadata, {'channel': 'web'})

    def test_unknown_asset_creates_nothing(self):
        with self.assertRaises(UnknownAsset):
            LedgerService.topup('user_1', 'SILVER', '1', 'unknown_001')
        self.assertEqual(Transaction.objects.count(), 0)
        self.assertFalse(Account.objects.filter(owner='user_1').exists())

    def test_missing_treasury_rolls_back_account_creation(self):
        AssetType.objects.create(symbol='SILVER', name='Silver')
        with self.assertRaises(TreasuryMissing):
            LedgerService.topup('user_1', 'SILVER', '1', 'silver_001')
        self.assertFalse(Account.objects.filter(owner='user_1').exists())

    def test_invalid_requests_are_rejected_before_storage(self):
        invalid_calls = [
            ('refund', 'user_1', 'GOLD', '1', 'bad_1', None),
            ('topup', '', 'GOLD', '1', 'bad_2', None),
            ('topup', 'user_1', 'GOLD', '0', 'bad_3', None),
            ('topup', 'user_1', 'GOLD', '1', '', None),
            ('topup', 'user_1', 'GOLD', '1', 'k' * 101, None),
            ('topup', 'user_1', 'GOLD', '1', 'bad_6', ['not', 'a', 'dict']),
        ]
        for transaction_type, owner, asset, amount, key, metadata in invalid_calls:
            with self.subTest(transaction_type=transaction_type, owner=owner, amount=amount, key=key):
                with self.assertRaises(InvalidRequest):
                    LedgerService.process(transaction_type, owner, asset, amount, key, metadata=metadata)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_lock_timeout_surfaces_as_transient_failure(self):
        with mock.patch('ledger.services.lock_accounts', side_effect=OperationalError('lock timeout')):
            with self.assertRaises(TransientStorageFailure):
                LedgerService.topup('user_1', 'GOLD', '1', 'transient_001')

        self.assertEqual(Transaction.objects.count(), 0)
        self.assertFalse(Account.objects.filter(owner='user_1').exists())

        # Retrying with the same key succeeds
        result = LedgerService.topup('user_1', 'GOLD', '1', 'transient_001')
        self.assertFalse(result.replayed)

    def test_duplicate_key_insert_is_resolved_as_replay(self):
        """A key that loses the race on the unique constraint returns the winner."""
        original = LedgerService.topup('user_1', 'GOLD', '10', 'race_key')
        winner = dataclasses.replace(original, replayed=True)

        # Both idempotency checks miss, as they would while the winner is uncommitted
        with mock.patch.object(LedgerService, '_find_replay', side_effect=[None, None, winner]):
            result = LedgerService.topup('user_1', 'GOLD', '10', 'race_key')

        self.assertEqual(result, winner)
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertEqual(self.balance_of('user_1'), Decimal('10'))

    def test_replay_found_after_locking_leaves_no_account(self):
        """A key committed while waiting on locks discards the lazily created account."""
        original = LedgerService.topup('user_1', 'GOLD', '10', 'late_key')
        winner = dataclasses.replace(original, replayed=True)

        # First check misses, the check under the locks finds the winner
        with mock.patch.object(LedgerService, '_find_replay', side_effect=[None, winner]):
            result = LedgerService.topup('someone_else', 'DIAMOND', '5', 'late_key')

        self.assertTrue(result.replayed)
        self.assertEqual(result.id, original.id)
        self.assertFalse(Account.objects.filter(owner='someone_else').exists())
        self.assertEqual(Transaction.objects.count(), 1)
        with self.assertRaises(NoWalletsFound):
            projections.get_balances('someone_else')

    def test_oversized_or_mistyped_fields_are_rejected(self):
        invalid_calls = [
            {'owner': 'o' * 51},
            {'reference_id': 'r' * 101},
            {'reference_id': {'order': 42}},
            {'owner': 42},
            {'asset': None},
        ]
        for overrides in invalid_calls:
            kwargs = dict(
                transaction_type='topup', owner='user_1', asset='GOLD',
                amount='1', idempotency_key='oversized_1',
            )
            kwargs.update(overrides)
            with self.subTest(**{k: repr(v)[:20] for k, v in overrides.items()}):
                with self.assertRaises(InvalidRequest):
                    LedgerService.process(**kwargs)

        self.assertEqual(Transaction.objects.count(), 0)
        self.assertFalse(Account.objects.filter(owner__startswith='o').exists())

        # The limits themselves are accepted
        result = LedgerService.topup('o' * 50, 'GOLD', '1', 'oversized_2', reference_id='r' * 100)
        self.assertFalse(result.replayed)

    def test_locks_are_taken_in_ascending_id_order(self):
        LedgerService.topup('user_1', 'GOLD', '10', 'order_seed')
        user = Account.objects.get(owner='user_1', asset_type__symbol='GOLD')
        treasury = gold_treasury()

        for transaction_type, key in [('topup', 'order_1'), ('spend', 'order_2')]:
            with self.subTest(transaction_type=transaction_type):
                locked_ids = []
                select_for_update = Account.objects.select_for_update

                def recording_select_for_update(*args, **kwargs):
                    queryset = select_for_update(*args, **kwargs)
                    get = queryset.get

                    def recording_get(*get_args, **get_kwargs):
                        locked_ids.append(get_kwargs['pk'])
                        return get(*get_args, **get_kwargs)

                    queryset.get = recording_get
                    return queryset

                with mock.patch.object(Account.objects, 'select_for_update',
                                       side_effect=recording_select_for_update):
                    LedgerService.process(transaction_type, 'user_1', 'GOLD', '1', key)

                self.assertEqual(set(locked_ids), {user.id, treasury.id})
                self.assertEqual(locked_ids, sorted(locked_ids, key=str))

    def test_lock_timeout_is_set_before_account_creation(self):
        calls = []

        def record_timeout():
            calls.append('lock_timeout')

        def record_resolve(owner, asset_type_id):
            calls.append('resolve_user_account')
            return resolve_user_account(owner, asset_type_id)

        with mock.patch('ledger.services.set_lock_timeout', side_effect=record_timeout), \
                mock.patch('ledger.services.resolve_user_account', side_effect=record_resolve):
            LedgerService.topup('user_1', 'GOLD', '1', 'timeout_order_1')

        self.assertEqual(calls, ['lock_timeout', 'resolve_user_account'])


class ManagementCommandTests(TestCase):

    def test_init_wallets_is_idempotent(self):
        provision_wallets()
        provision_wallets()

        self.assertEqual(
            list(AssetType.objects.values_list('symbol', flat=True)),
            ['DIAMOND', 'GOLD', 'LOYALTY']
        )
        treasuries = Account.objects.filter(kind=Account.KIND_SYSTEM)
        self.assertEqual(treasuries.count(), 3)
        self.assertTrue(all(t.balance == TREASURY_SUPPLY for t in treasuries))

    def test_init_wallets_custom_supply(self):
        call_command('init_wallets', '--treasury-supply', '500', stdout=StringIO())
        self.assertEqual(gold_treasury().balance, Decimal('500'))

    def test_verify_ledger_passes_on_consistent_ledger(self):
        provision_wallets()
        LedgerService.topup('user_1', 'GOLD', '100', 'verify_1')
        LedgerService.spend('user_1', 'GOLD', '30', 'verify_2')

        out = StringIO()
        call_command('verify_ledger', stdout=out, stderr=StringIO())
        self.assertIn('Ledger is consistent', out.getvalue())

    def test_verify_ledger_detects_drifted_balance(self):
        provision_wallets()
        LedgerService.topup('user_1', 'GOLD', '100', 'drift_1')
        Account.objects.filter(owner='user_1').update(balance=Decimal('90'))

        with self.assertRaises(CommandError):
            call_command('verify_ledger', stdout=StringIO(), stderr=StringIO())


@pytest.mark.postgres
@unittest.skipUnless(connection.vendor == 'postgresql', 'Row locking requires PostgreSQL')
class LedgerConcurrencyTests(TransactionTestCase):
    """Test concurrency scenarios."""

    def setUp(self):
        provision_wallets()
        LedgerService.topup('racer', 'GOLD', '100', 'concurrency_seed')

    def run_concurrently(self, calls):
        results = []
        errors = []

        def worker(call):
            try:
                results.append(call())
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results, errors

    def test_concurrent_spends_never_overdraw(self):
        """Twenty spends of 10 against a balance of 100: exactly ten succeed."""
        calls = [
            (lambda i=i: LedgerService.spend('racer', 'GOLD', '10', f'concurrent_spend_{i}'))
            for i in range(20)
        ]
        results, errors = self.run_concurrently(calls)

        self.assertEqual(len(results), 10)
        self.assertEqual(len(errors), 10)
        self.assertTrue(all(isinstance(e, InsufficientBalance) for e in errors))

        account = Account.objects.get(owner='racer', asset_type__symbol='GOLD')
        self.assertEqual(account.balance, Decimal('0'))
        self.assertEqual(gold_treasury().balance, TREASURY_SUPPLY)
        self.assertEqual(Transaction.objects.filter(type='spend').count(), 10)

    def test_concurrent_identical_idempotency_keys(self):
        """Test concurrent requests with identical idempotency keys."""
        calls = [
            (lambda: LedgerService.spend('racer', 'GOLD', '60', 'same_key'))
            for _ in range(5)
        ]
        results, errors = self.run_concurrently(calls)

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 5)
        self.assertEqual(len({r.id for r in results}), 1)
        self.assertEqual(sum(1 for r in results if not r.replayed), 1)
        self.assertEqual(Transaction.objects.filter(idempotency_key='same_key').count(), 1)

        account = Account.objects.get(owner='racer', asset_type__symbol='GOLD')
        self.assertEqual(account.balance, Decimal('40'))

    def test_opposite_directions_do_not_deadlock(self):
        """Top-ups and spends lock the same pair in the same order."""
        calls = []
        for i in range(10):
            calls.append(lambda i=i: LedgerService.topup('racer', 'GOLD', '5', f'mixed_topup_{i}'))
            calls.append(lambda i=i: LedgerService.spend('racer', 'GOLD', '5', f'mixed_spend_{i}'))
        results, errors = self.run_concurrently(calls)

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 20)

        account = Account.objects.get(owner='racer', asset_type__symbol='GOLD')
        self.assertEqual(account.balance, Decimal('100'))
        self.assertEqual(account.balance + gold_treasury().balance, TREASURY_SUPPLY)
