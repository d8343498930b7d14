"""
Transaction Export Service using Google Sheets

DESIGN DECISION: Every export lands in a NEW worksheet named after the
moment it was taken. Earlier exports are never overwritten, so a user can
compare two of them side by side.

This service handles:
1. Formatting transactions into flat, human-readable rows
2. Creating the export worksheet
3. Writing rows in batches the Sheets API accepts
4. Returning the worksheet URL

Wallet ids never appear in an export; they are resolved to names, and an
unknown id becomes an empty cell.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from profiteer.analysis.dates import effective_date
from profiteer.models.ledger import Transaction, TransactionKind, Wallet
from profiteer.services.storage.google_sheets import GoogleSheetsClient
from profiteer.services.storage.interface import ConnectionError, StorageError

logger = structlog.get_logger(__name__)

EXPORT_COLUMNS = [
    "Date", "Title", "Type", "Amount", "Currency",
    "Physical Wallet", "Logical Wallet", "Tags",
    "Source Wallet", "Destination Wallet",
]

UNTAGGED_LABEL = "Untagged"


class ExportFormatter:
    """Turns transactions into export rows for one user's wallets."""

    def __init__(self, wallets: Iterable[Wallet], currency: str):
        self._wallets = {w.id: w for w in wallets}
        self._currency = currency.upper()

    def header_row(self) -> list[str]:
        return list(EXPORT_COLUMNS)

    def wallet_name(self, wallet_id: Optional[str]) -> str:
        wallet = self._wallets.get(wallet_id) if wallet_id else None
        return wallet.name if wallet else ""

    def _first_affected(self, transaction: Transaction, physical: bool) -> str:
        for wallet_id in transaction.affected_wallet_ids:
            wallet = self._wallets.get(wallet_id)
            if wallet and wallet.is_physical == physical:
                return wallet.name
        return ""

    def format_transaction(self, transaction: Transaction) -> list[str]:
        moment = effective_date(transaction)
        if transaction.kind == TransactionKind.TRANSFER:
            physical, logical = "", ""
            source = self.wallet_name(transaction.source_wallet_id)
            destination = self.wallet_name(transaction.destination_wallet_id)
        else:
            physical = self._first_affected(transaction, physical=True)
            logical = self._first_affected(transaction, physical=False)
            source, destination = "", ""

        return [
            moment.strftime("%Y-%m-%d") if moment else "",
            transaction.title,
            transaction.kind.value,
            format(transaction.amount, "f"),
            self._currency,
            physical,
            logical,
            ", ".join(transaction.tags) if transaction.tags else UNTAGGED_LABEL,
            source,
            destination,
        ]

    def format_transactions(self, transactions: Iterable[Transaction]) -> list[list[str]]:
        """Header row followed by one row per transaction."""
        return [self.header_row()] + [self.format_transaction(t) for t in transactions]


def default_sheet_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Transactions Export - {now.strftime('%Y-%m-%d %H:%M:%S')}"


class GoogleSheetsExportService:
    """
    Writes formatted rows to a fresh worksheet.

    Flow:
    1. Create the worksheet
    2. Append rows, at most MAX_ROWS_PER_REQUEST per call
    3. Bold the header (best effort)
    4. Return the worksheet URL
    """

    MAX_ROWS_PER_REQUEST = 1000

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def export(self, rows: list[list[str]], sheet_name: Optional[str] = None) -> str:
        """
        Export rows (header first) to a new worksheet.

        Raises:
            ConnectionError: If Google Sheets is unreachable
            StorageError: If the worksheet cannot be created or written
        """
        title = sheet_name or default_sheet_name()
        try:
            sheet = self._client.add_sheet(
                title, rows=max(len(rows), 1), cols=len(EXPORT_COLUMNS)
            )
            for start in range(0, len(rows), self.MAX_ROWS_PER_REQUEST):
                self._client.append_rows(
                    sheet, rows[start:start + self.MAX_ROWS_PER_REQUEST]
                )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to export transactions: {e}")

        try:
            sheet.format("1:1", {"textFormat": {"bold": True}})
        except Exception as e:
            # The data is already written
            logger.warning("export_header_format_failed", sheet=title, error=str(e))

        logger.info("transactions_exported", sheet=title, rows=max(len(rows) - 1, 0))
        return sheet.url
