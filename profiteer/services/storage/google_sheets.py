"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- Limited query capabilities (we filter in Python)

One worksheet per collection. Every ledger row carries a user_id column and
the stores only ever return rows for the requested user.

A row that cannot be parsed is skipped and logged; one bad cell must not
hide a whole ledger. Skipped rows are NOT data anomalies: they never reach
the algorithms. The exception is an unreadable transaction date: the row is
kept with the raw text in `unreadable_date`, so the algorithms exclude it
and report it like any other undated transaction.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from profiteer.config import get_settings
from profiteer.models.audit import AuditEvent, AuditEventType, AuditSeverity
from profiteer.models.ledger import (
    CurrencyRate,
    PhysicalForm,
    Transaction,
    TransactionKind,
    Wallet,
    WalletKind,
)
from profiteer.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CurrencyRateStoreInterface,
    StorageError,
    TransactionStoreInterface,
    WalletStoreInterface,
)

logger = structlog.get_logger(__name__)


# Column mappings for Wallets sheet
WALLET_COLUMNS = [
    "id",
    "user_id",
    "name",
    "kind",
    "balance",
    "initial_balance",
    "physical_form",
    "created_at",
    "updated_at",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "title",
    "kind",
    "amount",
    "affected_wallet_ids_json",
    "source_wallet_id",
    "destination_wallet_id",
    "tags_json",
    "transaction_date",
    "created_at",
    "updated_at",
]

# Column mappings for CurrencyRates sheet
RATE_COLUMNS = [
    "id",
    "user_id",
    "from_currency",
    "to_currency",
    "rate",
    "month",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_USER_ID_COLUMN = 1


def _row_getter(row: list) -> Callable[..., str]:
    # Handle missing columns gracefully
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def _parse_datetime(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _parse_lenient_datetime(
    value: str,
    row_id: str,
    column: str,
) -> tuple[Optional[datetime], Optional[str]]:
    """Parsed datetime, or (None, raw text) when the cell can't be read."""
    try:
        return _parse_datetime(value), None
    except ValueError:
        logger.warning("sheet_date_unreadable", row_id=row_id, column=column, value=value)
        return None, value


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_wallets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.wallets_sheet_name, WALLET_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_rates_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.currency_rates_sheet_name, RATE_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def read_rows(self, sheet: gspread.Worksheet) -> list[list[str]]:
        """All data rows of a sheet (header excluded)."""
        return sheet.get_all_values()[1:]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def add_sheet(self, title: str, rows: int, cols: int) -> gspread.Worksheet:
        """Create a new worksheet in the configured spreadsheet."""
        return self.get_spreadsheet().add_worksheet(title=title, rows=rows, cols=cols)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_rows(self, sheet: gspread.Worksheet, rows: list[list[str]]) -> None:
        sheet.append_rows(rows, value_input_option="RAW")


def _user_rows(
    client: GoogleSheetsClient,
    sheet: gspread.Worksheet,
    user_id: str,
) -> list[list[str]]:
    return [
        row for row in client.read_rows(sheet)
        if row and row[0] and len(row) > _USER_ID_COLUMN and row[_USER_ID_COLUMN] == user_id
    ]


def _skip_row(sheet_name: str, row: list, error: Exception) -> None:
    logger.warning(
        "sheet_row_skipped",
        sheet=sheet_name,
        row_id=row[0] if row else None,
        error=str(error),
    )


class GoogleSheetsWalletStore(WalletStoreInterface):
    """Wallets stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_wallet(self, row: list) -> Wallet:
        """Convert a spreadsheet row to a Wallet."""
        safe_get = _row_getter(row)
        return Wallet(
            id=safe_get(0),
            user_id=safe_get(1),
            name=safe_get(2),
            kind=WalletKind(safe_get(3, WalletKind.PHYSICAL.value)),
            balance=Decimal(safe_get(4, "0")),
            initial_balance=Decimal(safe_get(5, "0")),
            physical_form=PhysicalForm(safe_get(6, PhysicalForm.FIAT_CURRENCY.value)),
            created_at=_parse_datetime(safe_get(7)),
            updated_at=_parse_datetime(safe_get(8)),
        )

    async def list_wallets(self, user_id: str) -> list[Wallet]:
        """List a user's wallets."""
        try:
            sheet = self._client.get_wallets_sheet()
            wallets = []
            for row in _user_rows(self._client, sheet, user_id):
                try:
                    wallets.append(self._row_to_wallet(row))
                except Exception as e:
                    _skip_row("wallets", row, e)
            return wallets
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list wallets: {e}")


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Transactions stored one per row.

    List fields (affected wallets, tags) are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        safe_get = _row_getter(row)
        row_id = safe_get(0)
        transaction_date, unreadable_date = _parse_lenient_datetime(
            safe_get(9), row_id, "transaction_date"
        )
        created_at, unreadable_created = _parse_lenient_datetime(
            safe_get(10), row_id, "created_at"
        )
        if transaction_date is None and unreadable_date is None:
            # created_at is the date of record here
            unreadable_date = unreadable_created
        updated_at, _ = _parse_lenient_datetime(safe_get(11), row_id, "updated_at")
        return Transaction(
            id=row_id,
            user_id=safe_get(1),
            title=safe_get(2),
            kind=TransactionKind(safe_get(3)),
            amount=Decimal(safe_get(4)),
            affected_wallet_ids=json.loads(safe_get(5, "[]")),
            source_wallet_id=safe_get(6) or None,
            destination_wallet_id=safe_get(7) or None,
            tags=json.loads(safe_get(8, "[]")),
            transaction_date=transaction_date,
            created_at=created_at,
            updated_at=updated_at,
            unreadable_date=unreadable_date,
        )

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        """List a user's transactions in sheet order."""
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = []
            for row in _user_rows(self._client, sheet, user_id):
                try:
                    transactions.append(self._row_to_transaction(row))
                except Exception as e:
                    _skip_row("transactions", row, e)
            return transactions
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")


class GoogleSheetsCurrencyRateStore(CurrencyRateStoreInterface):
    """Conversion rates stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_rate(self, row: list) -> CurrencyRate:
        safe_get = _row_getter(row)
        return CurrencyRate(
            id=safe_get(0),
            user_id=safe_get(1),
            from_currency=safe_get(2),
            to_currency=safe_get(3),
            rate=Decimal(safe_get(4)),
            month=safe_get(5) or None,
        )

    async def list_rates(self, user_id: str) -> list[CurrencyRate]:
        try:
            sheet = self._client.get_rates_sheet()
            rates = []
            for row in _user_rows(self._client, sheet, user_id):
                try:
                    rates.append(self._row_to_rate(row))
                except Exception as e:
                    _skip_row("currency_rates", row, e)
            return rates
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list currency rates: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _row_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
        )

    def _read_events(self, keep: Callable[[list], bool]) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in self._client.read_rows(sheet):
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                _skip_row("audit", row, e)
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = self._read_events(
                lambda row: len(row) > 7 and row[7] == str(correlation_id)
            )
            # Sort chronologically
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = self._read_events(
                lambda row: len(row) > 6 and row[5] == entity_type and row[6] == entity_id
            )
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events(lambda row: True)
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
