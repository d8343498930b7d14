"""Transaction export to Google Sheets."""

from profiteer.services.export.sheets_export_service import (
    EXPORT_COLUMNS,
    ExportFormatter,
    GoogleSheetsExportService,
)

__all__ = [
    "EXPORT_COLUMNS",
    "ExportFormatter",
    "GoogleSheetsExportService",
]
