"""
Data Models Package

This package contains all Pydantic models used by Profiteer.
All data flowing through the system must conform to these schemas.
"""

from profiteer.models.ledger import (
    CurrencyRate,
    PhysicalForm,
    Transaction,
    TransactionKind,
    Wallet,
    WalletKind,
)
from profiteer.models.period import (
    AllTime,
    AllWallets,
    DateFilterPeriod,
    Month,
    SpecificWallet,
    WalletFilter,
    Year,
    period_adapter,
)
from profiteer.models.report import (
    AnomalyType,
    DataAnomaly,
    DiscrepancyReport,
    PortfolioReport,
    TransactionWithBalances,
)
from profiteer.models.tags import (
    RESERVED_UNTAGGED,
    normalize_tag,
    normalize_tags,
    parse_tag_input,
)
from profiteer.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CurrencyRate",
    "PhysicalForm",
    "Transaction",
    "TransactionKind",
    "Wallet",
    "WalletKind",
    # Windows and filters
    "AllTime",
    "AllWallets",
    "DateFilterPeriod",
    "Month",
    "SpecificWallet",
    "WalletFilter",
    "Year",
    "period_adapter",
    # Results
    "AnomalyType",
    "DataAnomaly",
    "DiscrepancyReport",
    "PortfolioReport",
    "TransactionWithBalances",
    # Tags
    "RESERVED_UNTAGGED",
    "normalize_tag",
    "normalize_tags",
    "parse_tag_input",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
