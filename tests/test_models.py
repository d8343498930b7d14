"""
Tests for Profiteer Reconciliation

Test strategy:
1. Unit tests for individual components (models, tags, windows)
2. Pure-function tests for the detector and reconstructor
3. Flow tests over in-memory stores (no real API calls)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from profiteer.models import (
    AllTime,
    AllWallets,
    AnomalyType,
    CurrencyRate,
    DataAnomaly,
    DiscrepancyReport,
    Month,
    PhysicalForm,
    PortfolioReport,
    SpecificWallet,
    Transaction,
    TransactionKind,
    Wallet,
    WalletKind,
    Year,
    normalize_tag,
    normalize_tags,
    parse_tag_input,
    period_adapter,
)
from profiteer.models.period import _Period
from profiteer.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestWalletModel:
    """Tests for the Wallet model."""

    def test_wallet_creation(self):
        """Test Wallet model creation with defaults."""
        wallet = Wallet(id="w1", name="Bank", balance=Decimal("150"), initial_balance=Decimal("100"))
        assert wallet.kind == WalletKind.PHYSICAL
        assert wallet.physical_form == PhysicalForm.FIAT_CURRENCY
        assert wallet.is_physical
        assert not wallet.is_logical
        assert wallet.transaction_balance == Decimal("50")

    def test_wallet_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        wallet = Wallet(id="w1", name="  Savings  ")
        assert wallet.name == "Savings"

    def test_wallet_requires_id(self):
        """Test that a blank id is rejected."""
        with pytest.raises(ValueError):
            Wallet(id="")

    def test_wallet_is_frozen(self):
        """Test that snapshots cannot be mutated."""
        wallet = Wallet(id="w1")
        with pytest.raises(ValueError):
            wallet.balance = Decimal("10")

    def test_aware_timestamp_normalized_to_naive_utc(self):
        """Test that timezone-aware timestamps become naive UTC."""
        aware = datetime(2025, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=7)))
        wallet = Wallet(id="w1", created_at=aware)
        assert wallet.created_at == datetime(2025, 1, 1, 5, 0)
        assert wallet.created_at.tzinfo is None

    def test_wallet_kind_from_string(self):
        """Test that stored kind strings parse."""
        wallet = Wallet(id="w1", kind="Logical")
        assert wallet.kind is WalletKind.LOGICAL


class TestPhysicalForm:
    """Tests for the asset category enum."""

    def test_display_names(self):
        assert PhysicalForm.FIAT_CURRENCY.display_name == "Fiat Currency"
        assert PhysicalForm.ETFS.display_name == "ETFs"

    def test_currency_restrictions(self):
        assert PhysicalForm.CRYPTOCURRENCY.is_currency_allowed("btc")
        assert not PhysicalForm.CRYPTOCURRENCY.is_currency_allowed("USD")
        assert PhysicalForm.OTHER.is_currency_allowed("anything")

    def test_default_for_currency(self):
        assert PhysicalForm.default_for_currency("ETH") == PhysicalForm.CRYPTOCURRENCY
        assert PhysicalForm.default_for_currency("gold") == PhysicalForm.PRECIOUS_METALS
        assert PhysicalForm.default_for_currency("IDR") == PhysicalForm.FIAT_CURRENCY


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_income_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            id="t1",
            title="Salary",
            kind=TransactionKind.INCOME,
            amount=Decimal("1000"),
            affected_wallet_ids=["p1", "l1"],
            tags=["Salary", " salary ", "Work"],
        )
        assert tx.tags == ["salary", "work"]
        assert tx.referenced_wallet_ids == ["p1", "l1"]

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(id="t1", kind=TransactionKind.EXPENSE, amount=Decimal("-5"))

    def test_transfer_requires_endpoints(self):
        with pytest.raises(ValueError, match="source and destination"):
            Transaction(
                id="t1",
                kind=TransactionKind.TRANSFER,
                amount=Decimal("5"),
                source_wallet_id="p1",
            )

    def test_transfer_endpoints_must_differ(self):
        with pytest.raises(ValueError, match="must differ"):
            Transaction(
                id="t1",
                kind=TransactionKind.TRANSFER,
                amount=Decimal("5"),
                source_wallet_id="p1",
                destination_wallet_id="p1",
            )

    def test_non_transfer_cannot_have_endpoints(self):
        with pytest.raises(ValueError, match="cannot have transfer endpoints"):
            Transaction(
                id="t1",
                kind=TransactionKind.EXPENSE,
                amount=Decimal("5"),
                source_wallet_id="p1",
                destination_wallet_id="p2",
            )

    def test_blank_endpoints_are_none(self):
        """Test that blank endpoint cells from storage become None."""
        tx = Transaction(
            id="t1",
            kind=TransactionKind.INCOME,
            amount=Decimal("5"),
            source_wallet_id="",
            destination_wallet_id="",
        )
        assert tx.source_wallet_id is None
        assert tx.destination_wallet_id is None

    def test_transfer_references_both_endpoints(self):
        tx = Transaction(
            id="t1",
            kind=TransactionKind.TRANSFER,
            amount=Decimal("5"),
            source_wallet_id="p1",
            destination_wallet_id="p2",
        )
        assert tx.referenced_wallet_ids == ["p1", "p2"]

    def test_untagged_placeholder_removed(self):
        tx = Transaction(
            id="t1",
            kind=TransactionKind.EXPENSE,
            amount=Decimal("5"),
            tags=["untagged", "UNTAGGED", ""],
        )
        assert tx.tags == []


class TestTags:
    """Tests for tag normalization."""

    def test_normalize_tag(self):
        assert normalize_tag("  Food ") == "food"

    def test_normalize_tags_dedupes_preserving_order(self):
        assert normalize_tags(["Travel", "food", "TRAVEL", " ", "untagged"]) == ["travel", "food"]

    def test_parse_tag_input(self):
        assert parse_tag_input(" Food , travel , Shopping, shopping ") == [
            "food",
            "travel",
            "shopping",
        ]

    def test_parse_empty_input(self):
        assert parse_tag_input("") == []


class TestCurrencyRate:
    """Tests for the CurrencyRate model."""

    def test_codes_uppercased(self):
        rate = CurrencyRate(from_currency="usd", to_currency="idr", rate=Decimal("15000"))
        assert rate.from_currency == "USD"
        assert rate.to_currency == "IDR"
        assert rate.month is None

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            CurrencyRate(from_currency="USD", to_currency="EUR", rate=Decimal("0"))

    def test_rejects_bad_month_key(self):
        with pytest.raises(ValueError):
            CurrencyRate(from_currency="USD", to_currency="EUR", rate=Decimal("1"), month="2025-13")


class TestDateWindows:
    """Tests for AllTime / Month / Year windows."""

    def test_all_time_has_no_bounds(self):
        period = AllTime()
        assert period.date_range() == (None, None)
        assert period.cutoff is None
        assert period.display_text() == "All Time"
        assert period.contains(datetime(1900, 1, 1))
        assert not period.contains(None)

    def test_month_range(self):
        period = Month(year=2025, month=2)
        start, end = period.date_range()
        assert start == datetime(2025, 2, 1)
        assert end == datetime(2025, 2, 28, 23, 59, 59, 999999)
        assert period.display_text() == "February 2025"
        assert period.month_key == "2025-02"

    def test_leap_february(self):
        _, end = Month(year=2024, month=2).date_range()
        assert end.day == 29

    def test_month_contains_is_inclusive(self):
        period = Month(year=2025, month=10)
        assert period.contains(datetime(2025, 10, 1))
        assert period.contains(datetime(2025, 10, 31, 23, 59, 59, 999999))
        assert not period.contains(datetime(2025, 11, 1))
        assert not period.contains(datetime(2025, 9, 30, 23, 59))

    def test_year_range(self):
        period = Year(year=2025)
        assert period.date_range() == (
            datetime(2025, 1, 1),
            datetime(2025, 12, 31, 23, 59, 59, 999999),
        )
        assert period.display_text() == "2025"

    def test_month_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            Month(year=2025, month=13)
        with pytest.raises(ValueError):
            Month(year=2025, month=0)

    def test_discriminated_union_parsing(self):
        assert period_adapter.validate_python({"mode": "all_time"}) == AllTime()
        assert period_adapter.validate_python({"mode": "month", "year": 2025, "month": 10}) == Month(
            year=2025, month=10
        )
        assert isinstance(period_adapter.validate_python({"mode": "year", "year": 2024}), Year)

    def test_base_window_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            _Period()


class TestWalletFilters:
    """Tests for wallet filters."""

    def test_all_wallets(self):
        wallet_filter = AllWallets()
        assert wallet_filter.includes("anything")
        assert wallet_filter.display_text() == "All Wallets"

    def test_specific_wallet(self):
        wallet_filter = SpecificWallet(wallet_id="p1", wallet_name="Bank")
        assert wallet_filter.includes("p1")
        assert not wallet_filter.includes("p2")
        assert wallet_filter.display_text() == "Bank"

    def test_specific_wallet_rejects_blank(self):
        with pytest.raises(ValueError):
            SpecificWallet(wallet_id="  ", wallet_name="Bank")


class TestReportModels:
    """Tests for result models."""

    def test_discrepancy_report_properties(self):
        report = DiscrepancyReport(
            physical_total=Decimal("1050"),
            logical_total=Decimal("1000"),
            has_discrepancy=True,
            discrepancy_amount=Decimal("50"),
            replayed_physical_total=Decimal("1050"),
            replayed_logical_total=Decimal("1000"),
        )
        assert not report.is_balanced
        assert report.replay_matches_live

    def test_portfolio_report_totals(self):
        report = PortfolioReport(
            period_label="All Time",
            wallet_filter_label="All Wallets",
            portfolio_composition={
                PhysicalForm.FIAT_CURRENCY: Decimal("75"),
                PhysicalForm.CRYPTOCURRENCY: Decimal("25"),
            },
            expense_totals_by_tag={"food": Decimal("30"), "travel": Decimal("20")},
            display_rate=Decimal("2"),
        )
        assert report.total_portfolio_value == Decimal("100")
        assert report.total_expenses == Decimal("50")
        assert report.total_income == Decimal("0")
        assert report.composition_percentage(PhysicalForm.FIAT_CURRENCY) == 75.0
        assert report.composition_percentage(PhysicalForm.BONDS) == 0.0
        assert report.to_display(Decimal("10")) == Decimal("20")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            description="Report generated",
            user_id="user-1",
        )
        assert event.event_type == AuditEventType.REPORT_GENERATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.DATA_ANOMALY,
            description="Test",
            details={"key": "value"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "data_anomaly"
        assert log_dict["details"] == {"key": "value"}

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        cid = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            description="Test",
            user_id="user-1",
            correlation_id=cid,
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "store_error"
        assert row[4] == "user-1"
        assert row[7] == str(cid)

    def test_data_anomaly_builder_targets_transaction(self):
        anomaly = DataAnomaly(
            anomaly_type=AnomalyType.MISSING_DATE,
            message="Transaction 't1' has no date",
            transaction_id="t1",
            excluded=True,
        )
        event = AuditEventBuilder.data_anomaly("user-1", anomaly, uuid4())
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_type == "transaction"
        assert event.entity_id == "t1"
        assert event.details["anomaly_type"] == "missing_date"

    def test_discrepancy_detected_without_transaction(self):
        report = DiscrepancyReport(
            physical_total=Decimal("100"),
            logical_total=Decimal("50"),
            has_discrepancy=True,
            discrepancy_amount=Decimal("50"),
            replayed_physical_total=Decimal("100"),
            replayed_logical_total=Decimal("50"),
        )
        event = AuditEventBuilder.discrepancy_detected("user-1", report, uuid4())
        assert event.entity_type == "ledger"
        assert event.entity_id is None
        assert event.details["discrepancy_amount"] == "50"

    def test_transactions_exported(self):
        event = AuditEventBuilder.transactions_exported(
            "user-1", 3, "Transactions Export - 2025-10-19 08:00:00", uuid4()
        )
        assert event.event_type == AuditEventType.TRANSACTIONS_EXPORTED
        assert event.entity_type == "export"
        assert event.description == "Exported 3 transactions"
        assert event.details["transactions"] == 3


# Run tests with: pytest tests/ -v
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
