"""
Reconciliation and reporting algorithms.

Everything in this package is synchronous and side-effect free apart from
logging. Callers pass snapshots in and get results out.
"""

from profiteer.analysis.currency import resolve_display_rate
from profiteer.analysis.dates import effective_date, is_on_or_before
from profiteer.analysis.discrepancy import (
    DISCREPANCY_TOLERANCE,
    analyze,
    calculate_running_balances,
    calculate_total_logical_balance,
    calculate_total_physical_balance,
    find_first_discrepancy_transaction,
    get_discrepancy_amount,
    has_discrepancy,
)
from profiteer.analysis.filters import filter_transactions, filter_wallets
from profiteer.analysis.reconstruction import (
    is_wallet_included,
    reconstruct_logical_wallet_balances,
    reconstruct_physical_wallet_balances,
    reconstruct_portfolio_composition,
    reconstruct_tag_totals,
    reconstruct_wallet_balance,
    reconstruct_wallet_balances,
)

__all__ = [
    "DISCREPANCY_TOLERANCE",
    "analyze",
    "calculate_running_balances",
    "calculate_total_logical_balance",
    "calculate_total_physical_balance",
    "effective_date",
    "filter_transactions",
    "filter_wallets",
    "find_first_discrepancy_transaction",
    "get_discrepancy_amount",
    "has_discrepancy",
    "is_on_or_before",
    "is_wallet_included",
    "reconstruct_logical_wallet_balances",
    "reconstruct_physical_wallet_balances",
    "reconstruct_portfolio_composition",
    "reconstruct_tag_totals",
    "reconstruct_wallet_balance",
    "reconstruct_wallet_balances",
    "resolve_display_rate",
]
