"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; the in-memory stores serve tests
and embedding.
"""

from profiteer.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CurrencyRateStoreInterface,
    NotFoundError,
    StorageError,
    TransactionStoreInterface,
    WalletStoreInterface,
)
from profiteer.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCurrencyRateStore,
    GoogleSheetsTransactionStore,
    GoogleSheetsWalletStore,
)
from profiteer.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCurrencyRateStore,
    InMemoryTransactionStore,
    InMemoryWalletStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CurrencyRateStoreInterface",
    "TransactionStoreInterface",
    "WalletStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCurrencyRateStore",
    "GoogleSheetsTransactionStore",
    "GoogleSheetsWalletStore",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCurrencyRateStore",
    "InMemoryTransactionStore",
    "InMemoryWalletStore",
]
