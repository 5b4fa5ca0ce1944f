"""Admin configuration for ledger app."""
from django.contrib import admin
from .models import AssetType, Account, Transaction, LedgerEntry


@admin.register(AssetType)
class AssetTypeAdmin(admin.ModelAdmin):
    list_display = ['symbol', 'name', 'created_at']
    search_fields = ['symbol', 'name']
    readonly_fields = ['id', 'created_at']

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['owner', 'asset_type', 'kind', 'balance', 'updated_at']
    list_filter = ['kind', 'asset_type']
    search_fields = ['owner']
    # Balances only change through the ledger engine
    readonly_fields = ['id', 'balance', 'created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['idempotency_key', 'type', 'amount', 'asset_type', 'status', 'created_at']
    list_filter = ['type', 'status', 'asset_type', 'created_at']
    search_fields = ['idempotency_key', 'reference_id', 'source_account__owner', 'destination_account__owner']
    readonly_fields = ['id', 'created_at']

    def has_delete_permission(self, request, obj=None):
        # Prevent deletion of transactions (immutable)
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ['transaction', 'account', 'entry_type', 'amount', 'balance_after', 'created_at']
    list_filter = ['entry_type', 'created_at']
    search_fields = ['transaction__idempotency_key', 'account__owner']
    readonly_fields = ['id', 'created_at']

    def has_delete_permission(self, request, obj=None):
        # Prevent deletion of ledger entries (immutable)
        return False

    def has_change_permission(self, request, obj=None):
        # Prevent updates to ledger entries (immutable)
        return False
