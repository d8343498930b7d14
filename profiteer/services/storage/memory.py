"""
In-Memory Storage

Stores backed by plain lists, for tests and for embedding the
reconciliation code in something that already holds the ledger in memory.
Same user scoping as the Sheets stores.
"""

from typing import Iterable, Optional
from uuid import UUID

from profiteer.models.audit import AuditEvent
from profiteer.models.ledger import CurrencyRate, Transaction, Wallet
from profiteer.services.storage.interface import (
    AuditStorageInterface,
    CurrencyRateStoreInterface,
    TransactionStoreInterface,
    WalletStoreInterface,
)


class InMemoryWalletStore(WalletStoreInterface):

    def __init__(self, wallets: Optional[Iterable[Wallet]] = None):
        self._wallets = list(wallets or [])

    def add(self, wallet: Wallet) -> None:
        self._wallets.append(wallet)

    async def list_wallets(self, user_id: str) -> list[Wallet]:
        return [w for w in self._wallets if w.user_id == user_id]


class InMemoryTransactionStore(TransactionStoreInterface):

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._transactions = list(transactions or [])

    def add(self, transaction: Transaction) -> None:
        self._transactions.append(transaction)

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        return [t for t in self._transactions if t.user_id == user_id]


class InMemoryCurrencyRateStore(CurrencyRateStoreInterface):

    def __init__(self, rates: Optional[Iterable[CurrencyRate]] = None):
        self._rates = list(rates or [])

    async def list_rates(self, user_id: str) -> list[CurrencyRate]:
        return [r for r in self._rates if r.user_id == user_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
