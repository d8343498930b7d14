"""
Main Orchestrator for Profiteer Reconciliation

This module ties together the stores, the validator, the analysis
functions and the audit logger, and defines the end-to-end flows for:
1. Reconciliation (load ledger → replay → report → audit)
2. Reporting (validate window → load ledger → reconstruct → audit)
3. Export (load ledger → select → write worksheet → audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every ledger load is scoped to one non-empty user id
- No report is computed for a window that failed validation
- Every anomaly an algorithm reports is persisted to the audit trail

The analysis functions stay pure; all I/O happens here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from profiteer.analysis import (
    analyze,
    calculate_running_balances,
    effective_date,
    filter_transactions,
    reconstruct_logical_wallet_balances,
    reconstruct_physical_wallet_balances,
    reconstruct_portfolio_composition,
    reconstruct_tag_totals,
    resolve_display_rate,
)
from profiteer.audit import AnomalyLog, AuditLogger, create_correlation_id
from profiteer.config import get_settings
from profiteer.models.ledger import Transaction, TransactionKind, Wallet
from profiteer.models.period import (
    AllTime,
    AllWallets,
    DateFilterPeriod,
    Month,
    SpecificWallet,
    WalletFilter,
)
from profiteer.models.report import (
    DiscrepancyReport,
    PortfolioReport,
    TransactionWithBalances,
)
from profiteer.services.export import ExportFormatter, GoogleSheetsExportService
from profiteer.services.storage import (
    CurrencyRateStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCurrencyRateStore,
    GoogleSheetsTransactionStore,
    GoogleSheetsWalletStore,
    NotFoundError,
    StorageError,
    TransactionStoreInterface,
    WalletStoreInterface,
)
from profiteer.validation import PeriodValidationError, PeriodValidator

logger = structlog.get_logger(__name__)


class _LedgerFlow:
    """Shared ledger loading for the flows below."""

    def __init__(
        self,
        wallet_store: Optional[WalletStoreInterface] = None,
        transaction_store: Optional[TransactionStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._wallet_store = wallet_store
        self._transaction_store = transaction_store
        self._audit_logger = audit_logger

    async def _load_ledger(
        self,
        user_id: str,
        correlation_id: UUID,
    ) -> tuple[list[Wallet], list[Transaction]]:
        """
        Load one user's wallets and transactions.

        Raises:
            ValueError: If user_id is blank
            StorageError: If storage is missing or a store fails
            Exception: Anything else a store raises, after it is audited
        """
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required")

        if self._wallet_store is None or self._transaction_store is None:
            raise StorageError("Ledger storage is not configured")

        store = "wallets"
        try:
            wallets = await self._wallet_store.list_wallets(user_id)
            store = "transactions"
            transactions = await self._transaction_store.list_transactions(user_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_store_error(
                    store=store,
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise
        except Exception as e:
            # A store bug, not a storage outage
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"store": store, "user_id": user_id},
                    correlation_id=correlation_id,
                )
            raise

        return wallets, transactions

    async def _audit_anomalies(
        self,
        user_id: str,
        diagnostics: AnomalyLog,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and len(diagnostics):
            await self._audit_logger.log_anomalies(
                user_id=user_id,
                anomalies=diagnostics.anomalies,
                correlation_id=correlation_id,
            )


class ReconciliationFlow(_LedgerFlow):
    """
    Orchestrates the Physical/Logical consistency check.

    Flow:
    1. Load → One user's wallets and transactions
    2. Analyze → Live totals plus a chronological replay
    3. Audit → The check, any discrepancy, every anomaly
    """

    async def check(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> DiscrepancyReport:
        """
        Run a discrepancy check for one user.

        Returns:
            DiscrepancyReport; has_discrepancy=True with a None transaction
            id means the balances disagree with no history to replay.
        """
        correlation_id = correlation_id or create_correlation_id()
        wallets, transactions = await self._load_ledger(user_id, correlation_id)

        diagnostics = AnomalyLog()
        report = analyze(wallets, transactions, diagnostics)

        if self._audit_logger:
            await self._audit_logger.log_discrepancy_check(
                user_id=user_id,
                report=report,
                correlation_id=correlation_id,
            )
        await self._audit_anomalies(user_id, diagnostics, correlation_id)

        return report

    async def running_balances(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[TransactionWithBalances]:
        """Replay rows for one user, newest first."""
        correlation_id = correlation_id or create_correlation_id()
        wallets, transactions = await self._load_ledger(user_id, correlation_id)

        diagnostics = AnomalyLog()
        rows = calculate_running_balances(wallets, transactions, diagnostics)
        await self._audit_anomalies(user_id, diagnostics, correlation_id)
        return rows


class ReportFlow(_LedgerFlow):
    """
    Orchestrates historical reports.

    Flow:
    1. Validate → Raw window input becomes a DateFilterPeriod (or is rejected)
    2. Load → One user's wallets and transactions
    3. Reconstruct → Cumulative balances, period-local tag totals
    4. Convert → Display currency rate from the user's rates
    5. Audit → The report and every anomaly

    Validation failures never reach step 2.
    """

    def __init__(
        self,
        wallet_store: Optional[WalletStoreInterface] = None,
        transaction_store: Optional[TransactionStoreInterface] = None,
        rate_store: Optional[CurrencyRateStoreInterface] = None,
        validator: Optional[PeriodValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: Optional[str] = None,
    ):
        super().__init__(wallet_store, transaction_store, audit_logger)
        self._rate_store = rate_store
        self._validator = validator or PeriodValidator()
        self._default_currency = (
            default_currency or get_settings().app.default_currency
        ).upper()

    async def _display_rate(
        self,
        user_id: str,
        period: DateFilterPeriod,
        display_currency: str,
    ) -> Decimal:
        rates = []
        if display_currency != self._default_currency and self._rate_store:
            rates = await self._rate_store.list_rates(user_id)
        month = period.month_key if isinstance(period, Month) else None
        return resolve_display_rate(rates, self._default_currency, display_currency, month)

    async def build_report(
        self,
        user_id: str,
        period: DateFilterPeriod,
        wallet_filter: WalletFilter = AllWallets(),
        display_currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PortfolioReport:
        """
        Build the report for an already-validated window.

        Raises:
            NotFoundError: If a SpecificWallet filter names an unknown wallet
        """
        correlation_id = correlation_id or create_correlation_id()
        wallets, transactions = await self._load_ledger(user_id, correlation_id)

        if isinstance(wallet_filter, SpecificWallet) and not any(
            w.id == wallet_filter.wallet_id for w in wallets
        ):
            raise NotFoundError(f"Wallet not found: {wallet_filter.wallet_id}")

        cutoff = period.cutoff
        diagnostics = AnomalyLog()
        display_currency = (display_currency or self._default_currency).upper()

        report = PortfolioReport(
            period_label=period.display_text(),
            wallet_filter_label=wallet_filter.display_text(),
            cutoff=cutoff,
            portfolio_composition=reconstruct_portfolio_composition(
                wallets, transactions, cutoff, wallet_filter, diagnostics
            ),
            physical_wallet_balances=reconstruct_physical_wallet_balances(
                wallets, transactions, cutoff, wallet_filter, diagnostics
            ),
            logical_wallet_balances=reconstruct_logical_wallet_balances(
                wallets, transactions, cutoff, wallet_filter, diagnostics
            ),
            expense_totals_by_tag=reconstruct_tag_totals(
                transactions, TransactionKind.EXPENSE, period, wallet_filter, diagnostics
            ),
            income_totals_by_tag=reconstruct_tag_totals(
                transactions, TransactionKind.INCOME, period, wallet_filter, diagnostics
            ),
            default_currency=self._default_currency,
            display_currency=display_currency,
            display_rate=await self._display_rate(user_id, period, display_currency),
            anomalies=diagnostics.anomalies,
        )

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                user_id=user_id,
                report=report,
                correlation_id=correlation_id,
            )
        await self._audit_anomalies(user_id, diagnostics, correlation_id)

        return report

    async def build_report_from_input(
        self,
        user_id: str,
        mode: Any,
        year: Any = None,
        month: Any = None,
        wallet_filter: WalletFilter = AllWallets(),
        display_currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PortfolioReport:
        """
        Validate raw window input, then build the report.

        Raises:
            PeriodValidationError: If the window is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._validator.validate(mode, year, month)

        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    user_id=user_id,
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            raise PeriodValidationError(result.issues)

        return await self.build_report(
            user_id=user_id,
            period=result.period,
            wallet_filter=wallet_filter,
            display_currency=display_currency,
            correlation_id=correlation_id,
        )

class ExportFlow(_LedgerFlow):
    """
    Orchestrates transaction exports to Google Sheets.

    Flow:
    1. Load → One user's wallets and transactions
    2. Select → Wallet filter, then the window, oldest first
    3. Export → Formatted rows into a new worksheet
    4. Audit → The export and its destination
    """

    def __init__(
        self,
        wallet_store: Optional[WalletStoreInterface] = None,
        transaction_store: Optional[TransactionStoreInterface] = None,
        exporter: Optional[GoogleSheetsExportService] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: Optional[str] = None,
    ):
        super().__init__(wallet_store, transaction_store, audit_logger)
        self._exporter = exporter
        self._default_currency = (
            default_currency or get_settings().app.default_currency
        ).upper()

    @staticmethod
    def select_transactions(
        transactions: list[Transaction],
        period: DateFilterPeriod = AllTime(),
        wallet_filter: WalletFilter = AllWallets(),
    ) -> list[Transaction]:
        """
        Transactions an export covers, oldest first.

        AllTime keeps undated transactions (at the end); a bounded window
        cannot place them and drops them.
        """
        selected = [
            t for t in filter_transactions(transactions, wallet_filter)
            if isinstance(period, AllTime) or period.contains(effective_date(t))
        ]
        return sorted(
            selected,
            key=lambda t: (effective_date(t) is None, effective_date(t) or datetime.min),
        )

    async def export_transactions(
        self,
        user_id: str,
        period: DateFilterPeriod = AllTime(),
        wallet_filter: WalletFilter = AllWallets(),
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Export one user's transactions and return the worksheet URL.

        Raises:
            StorageError: If no exporter is configured or the export fails
        """
        correlation_id = correlation_id or create_correlation_id()
        if self._exporter is None:
            raise StorageError("Export is not configured")

        wallets, transactions = await self._load_ledger(user_id, correlation_id)
        selected = self.select_transactions(transactions, period, wallet_filter)
        formatter = ExportFormatter(wallets, currency or self._default_currency)

        try:
            url = self._exporter.export(formatter.format_transactions(selected))
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_store_error(
                    store="export",
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_export(
                user_id=user_id,
                count=len(selected),
                destination=url,
                correlation_id=correlation_id,
            )
        return url



def create_app_components(
    use_storage: bool = True,
) -> tuple[ReconciliationFlow, ReportFlow, ExportFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for running without storage.

    Returns:
        (reconciliation_flow, report_flow, export_flow, sheets_client)
    """
    sheets_client = None
    wallet_store = None
    transaction_store = None
    rate_store = None
    exporter = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            wallet_store = GoogleSheetsWalletStore(sheets_client)
            transaction_store = GoogleSheetsTransactionStore(sheets_client)
            rate_store = GoogleSheetsCurrencyRateStore(sheets_client)
            exporter = GoogleSheetsExportService(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            wallet_store = None
            transaction_store = None
            rate_store = None
            exporter = None
            audit_logger = AuditLogger()  # Local-only logging
    else:
        audit_logger = AuditLogger()  # Local-only logging

    reconciliation_flow = ReconciliationFlow(
        wallet_store=wallet_store,
        transaction_store=transaction_store,
        audit_logger=audit_logger,
    )

    report_flow = ReportFlow(
        wallet_store=wallet_store,
        transaction_store=transaction_store,
        rate_store=rate_store,
        audit_logger=audit_logger,
    )

    export_flow = ExportFlow(
        wallet_store=wallet_store,
        transaction_store=transaction_store,
        exporter=exporter,
        audit_logger=audit_logger,
    )

    return reconciliation_flow, report_flow, export_flow, sheets_client
