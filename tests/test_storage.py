"""
Tests for the storage layer.

The Sheets stores are exercised with a fake client that serves rows from
memory; nothing here talks to Google.
"""

import asyncio
import json

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from profiteer.analysis import effective_date
from profiteer.audit import AuditLogger
from profiteer.models import (
    AnomalyType,
    PhysicalForm,
    Transaction,
    TransactionKind,
    Wallet,
    WalletKind,
)
from profiteer.models.audit import AuditEvent, AuditEventType
from profiteer.orchestrator import ReconciliationFlow
from profiteer.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCurrencyRateStore,
    GoogleSheetsTransactionStore,
    GoogleSheetsWalletStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    InMemoryWalletStore,
    StorageError,
)


class FakeSheet:
    def __init__(self, rows=None):
        self.rows = rows or []

    def append_row(self, row, value_input_option=None):
        self.rows.append(row)


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; one FakeSheet per collection."""

    def __init__(self, wallets=(), transactions=(), rates=(), audit=()):
        self.wallets = FakeSheet(list(wallets))
        self.transactions = FakeSheet(list(transactions))
        self.rates = FakeSheet(list(rates))
        self.audit = FakeSheet(list(audit))

    def get_wallets_sheet(self):
        return self.wallets

    def get_transactions_sheet(self):
        return self.transactions

    def get_rates_sheet(self):
        return self.rates

    def get_audit_sheet(self):
        return self.audit

    def read_rows(self, sheet):
        return list(sheet.rows)


class BrokenSheetsClient(FakeSheetsClient):
    def read_rows(self, sheet):
        raise RuntimeError("quota exceeded")


class TestGoogleSheetsWalletStore:
    """Tests for GoogleSheetsWalletStore."""

    def test_parses_rows_for_user(self):
        client = FakeSheetsClient(wallets=[
            ["w1", "user-1", "Bank", "Physical", "150.50", "100", "fiat_currency",
             "2025-01-01T00:00:00", ""],
            ["w2", "user-2", "Other", "Physical", "5", "5", "", "", ""],
            ["w3", "user-1", "Food", "Logical", "20", "", "", "", ""],
        ])
        wallets = asyncio.run(GoogleSheetsWalletStore(client).list_wallets("user-1"))

        assert [w.id for w in wallets] == ["w1", "w3"]
        assert wallets[0].balance == Decimal("150.50")
        assert wallets[0].created_at == datetime(2025, 1, 1)
        assert wallets[1].kind is WalletKind.LOGICAL
        assert wallets[1].initial_balance == Decimal("0")
        assert wallets[1].physical_form is PhysicalForm.FIAT_CURRENCY

    def test_malformed_row_skipped(self):
        client = FakeSheetsClient(wallets=[
            ["w1", "user-1", "Bank", "Physical", "not-a-number"],
            ["w2", "user-1", "Cash", "Physical", "10"],
        ])
        wallets = asyncio.run(GoogleSheetsWalletStore(client).list_wallets("user-1"))
        assert [w.id for w in wallets] == ["w2"]

    def test_read_failure_is_storage_error(self):
        store = GoogleSheetsWalletStore(BrokenSheetsClient())
        with pytest.raises(StorageError, match="quota exceeded"):
            asyncio.run(store.list_wallets("user-1"))


class TestGoogleSheetsTransactionStore:
    """Tests for GoogleSheetsTransactionStore."""

    def test_parses_json_columns(self):
        client = FakeSheetsClient(transactions=[
            ["t1", "user-1", "Lunch", "Expense", "12.5", json.dumps(["w1", "w3"]), "", "",
             json.dumps(["Food", "untagged"]), "2025-02-03T12:00:00", "2025-02-03T12:05:00", ""],
            ["t2", "user-1", "Move", "Transfer", "40", "[]", "w1", "w2", "[]", "", "", ""],
        ])
        transactions = asyncio.run(
            GoogleSheetsTransactionStore(client).list_transactions("user-1")
        )

        assert [t.id for t in transactions] == ["t1", "t2"]
        assert transactions[0].affected_wallet_ids == ["w1", "w3"]
        assert transactions[0].tags == ["food"]
        assert transactions[0].transaction_date == datetime(2025, 2, 3, 12, 0)
        assert transactions[1].kind is TransactionKind.TRANSFER
        assert transactions[1].transaction_date is None

    def test_unreadable_date_kept_for_reporting(self):
        client = FakeSheetsClient(transactions=[
            ["t1", "user-1", "Rent", "Expense", "500", json.dumps(["w1"]), "", "", "[]",
             "not-a-date", "2025-02-03T12:05:00", ""],
            ["t2", "user-1", "Refund", "Income", "5", json.dumps(["w1"]), "", "", "[]",
             "", "03/02/2025", ""],
        ])
        transactions = asyncio.run(
            GoogleSheetsTransactionStore(client).list_transactions("user-1")
        )

        assert [t.id for t in transactions] == ["t1", "t2"]
        assert transactions[0].transaction_date is None
        assert transactions[0].created_at == datetime(2025, 2, 3, 12, 5)
        assert transactions[0].unreadable_date == "not-a-date"
        assert effective_date(transactions[0]) is None
        assert transactions[1].unreadable_date == "03/02/2025"
        assert effective_date(transactions[1]) is None

    def test_unreadable_date_reaches_reconciliation(self):
        client = FakeSheetsClient(
            wallets=[
                ["w1", "user-1", "Bank", "Physical", "100", "0", "", "", ""],
                ["w2", "user-1", "Food", "Logical", "100", "0", "", "", ""],
            ],
            transactions=[
                ["t1", "user-1", "Salary", "Income", "100", json.dumps(["w1", "w2"]), "", "",
                 "[]", "2025-01-10T00:00:00", "", ""],
                ["t2", "user-1", "Rent", "Expense", "40", json.dumps(["w1"]), "", "",
                 "[]", "not-a-date", "2025-02-03T12:05:00", ""],
            ],
        )
        audit = InMemoryAuditStorage()
        flow = ReconciliationFlow(
            GoogleSheetsWalletStore(client),
            GoogleSheetsTransactionStore(client),
            AuditLogger(audit),
        )

        report = asyncio.run(flow.check("user-1"))

        assert report.skipped_transaction_ids == ["t2"]
        assert report.transactions_replayed == 1
        assert report.anomalies[0].anomaly_type is AnomalyType.MISSING_DATE
        assert report.anomalies[0].details == {"raw_date": "not-a-date"}
        anomaly_events = [
            e for e in audit.events if e.event_type == AuditEventType.DATA_ANOMALY
        ]
        assert [e.entity_id for e in anomaly_events] == ["t2"]

    def test_invalid_transfer_row_skipped(self):
        client = FakeSheetsClient(transactions=[
            ["t1", "user-1", "Broken", "Transfer", "40", "[]", "w1", "", "[]", "", "", ""],
        ])
        assert asyncio.run(
            GoogleSheetsTransactionStore(client).list_transactions("user-1")
        ) == []


class TestGoogleSheetsCurrencyRateStore:

    def test_parses_rates(self):
        client = FakeSheetsClient(rates=[
            ["r1", "user-1", "usd", "idr", "15000", ""],
            ["r2", "user-1", "USD", "IDR", "16000", "2025-10"],
        ])
        rates = asyncio.run(GoogleSheetsCurrencyRateStore(client).list_rates("user-1"))
        assert rates[0].from_currency == "USD"
        assert rates[0].month is None
        assert rates[1].month == "2025-10"


class TestGoogleSheetsAuditStorage:

    def test_append_and_read_back(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        cid = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.DATA_ANOMALY,
            description="Transaction 't1' has no date",
            user_id="user-1",
            entity_type="transaction",
            entity_id="t1",
            correlation_id=cid,
            details={"amount": Decimal("5")},
        )

        assert asyncio.run(storage.append_event(event))
        events = asyncio.run(storage.get_events_by_correlation_id(cid))

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].entity_id == "t1"
        assert events[0].details == {"amount": "5"}
        assert asyncio.run(storage.get_events_by_entity("transaction", "t1"))[0].user_id == "user-1"


class TestInMemoryStores:

    def test_scoped_to_user(self):
        wallets = InMemoryWalletStore([
            Wallet(id="w1", user_id="user-1"),
            Wallet(id="w2", user_id="user-2"),
        ])
        transactions = InMemoryTransactionStore()
        transactions.add(Transaction(
            id="t1", user_id="user-2", kind=TransactionKind.INCOME, amount=Decimal("1")
        ))

        assert [w.id for w in asyncio.run(wallets.list_wallets("user-1"))] == ["w1"]
        assert asyncio.run(transactions.list_transactions("user-1")) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
