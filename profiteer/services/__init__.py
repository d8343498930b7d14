"""Services package."""

from profiteer.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CurrencyRateStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCurrencyRateStore,
    GoogleSheetsTransactionStore,
    GoogleSheetsWalletStore,
    InMemoryAuditStorage,
    InMemoryCurrencyRateStore,
    InMemoryTransactionStore,
    InMemoryWalletStore,
    NotFoundError,
    StorageError,
    TransactionStoreInterface,
    WalletStoreInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CurrencyRateStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCurrencyRateStore",
    "GoogleSheetsTransactionStore",
    "GoogleSheetsWalletStore",
    "InMemoryAuditStorage",
    "InMemoryCurrencyRateStore",
    "InMemoryTransactionStore",
    "InMemoryWalletStore",
    "NotFoundError",
    "StorageError",
    "TransactionStoreInterface",
    "WalletStoreInterface",
]
