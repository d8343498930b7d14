"""
Historical Balance Reconstructor

Answers "what did I have as of the end of this window?" for wallets and the
portfolio, and "what did I earn/spend in this window?" for tags.

DESIGN DECISION: The two questions use different date semantics on purpose.

    wallet balances, composition  -> CUMULATIVE up to the cutoff
    tag totals                    -> PERIOD-LOCAL to the window

A February report shows the wallet holding everything earned since it was
opened, but the expense chart only shows February's spending. Do not merge
the two paths.

A cutoff of None is All Time and uses the stored balances directly.
Wallets whose balance comes out as exactly zero are left out of every
mapping returned here.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from profiteer.analysis.dates import (
    dated_transactions,
    effective_date,
    is_on_or_before,
    missing_date_anomaly,
)
from profiteer.analysis.filters import (
    filter_transactions,
    filter_wallets,
    known_wallet_transactions,
)
from profiteer.audit.diagnostics import AnomalyLog
from profiteer.models.ledger import (
    PhysicalForm,
    Transaction,
    TransactionKind,
    Wallet,
    WalletKind,
)
from profiteer.models.period import AllWallets, DateFilterPeriod, WalletFilter
from profiteer.models.report import AnomalyType, DataAnomaly

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


def _signed_effect(transaction: Transaction, wallet_id: str) -> Decimal:
    """What the transaction does to one wallet's balance."""
    if transaction.kind is TransactionKind.TRANSFER:
        if transaction.source_wallet_id == wallet_id:
            return -transaction.amount
        if transaction.destination_wallet_id == wallet_id:
            return transaction.amount
        return _ZERO
    if wallet_id not in transaction.affected_wallet_ids:
        return _ZERO
    if transaction.kind is TransactionKind.INCOME:
        return transaction.amount
    return -transaction.amount


def _touches(transaction: Transaction, wallet_id: str) -> bool:
    return wallet_id in transaction.referenced_wallet_ids


def _created_by(wallet: Wallet, cutoff: datetime) -> bool:
    """Was the wallet open at the cutoff? Wallets without a timestamp always are."""
    return wallet.created_at is None or wallet.created_at <= cutoff


def _qualifying(
    wallet: Wallet,
    transactions: list[Transaction],
    cutoff: datetime,
) -> list[Transaction]:
    return [
        t for t in transactions
        if _touches(t, wallet.id) and is_on_or_before(effective_date(t), cutoff)
    ]


# =============================================================================
# WALLET BALANCES (cumulative)
# =============================================================================

def reconstruct_wallet_balance(
    wallet: Wallet,
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    diagnostics: Optional[AnomalyLog] = None,
) -> Decimal:
    """
    Balance of one wallet as of `cutoff` (inclusive).

    Initial balance (if the wallet existed by then) plus the signed sum of
    every transaction touching the wallet dated on or before the cutoff.
    A transaction dated before the wallet was created still counts and is
    reported, since the ledger says it happened.
    """
    if cutoff is None:
        return wallet.balance

    balance = wallet.initial_balance if _created_by(wallet, cutoff) else _ZERO

    for transaction in transactions:
        if not _touches(transaction, wallet.id):
            continue
        moment = effective_date(transaction)
        if moment is None:
            if diagnostics is not None:
                diagnostics.report(missing_date_anomaly(transaction))
            continue
        if moment > cutoff:
            continue
        if (
            diagnostics is not None
            and wallet.created_at is not None
            and moment < wallet.created_at
        ):
            diagnostics.report(DataAnomaly(
                anomaly_type=AnomalyType.PREDATES_WALLET_CREATION,
                message=(
                    f"Transaction '{transaction.title or transaction.id}' is dated "
                    f"before wallet '{wallet.name or wallet.id}' was created"
                ),
                transaction_id=transaction.id,
                wallet_id=wallet.id,
                details={
                    "transaction_date": moment.isoformat(),
                    "wallet_created_at": wallet.created_at.isoformat(),
                },
            ))
        balance += _signed_effect(transaction, wallet.id)

    return balance


def is_wallet_included(
    wallet: Wallet,
    transactions: list[Transaction],
    cutoff: Optional[datetime],
) -> bool:
    """
    Does the wallet belong in a view as of `cutoff`?

    Yes if it has a dated transaction on or before the cutoff, or it was
    created by the cutoff with a non-zero initial balance.
    """
    if cutoff is None:
        return True
    if _qualifying(wallet, transactions, cutoff):
        return True
    return _created_by(wallet, cutoff) and wallet.initial_balance != _ZERO


def reconstruct_wallet_balances(
    wallets: list[Wallet],
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    wallet_filter: WalletFilter = AllWallets(),
    diagnostics: Optional[AnomalyLog] = None,
) -> dict[str, Decimal]:
    """Wallet id -> balance as of `cutoff`, zero balances left out."""
    if cutoff is not None:
        transactions = known_wallet_transactions(
            dated_transactions(transactions, diagnostics), wallets, diagnostics
        )

    balances = {}
    for wallet in filter_wallets(wallets, wallet_filter):
        if not is_wallet_included(wallet, transactions, cutoff):
            continue
        balance = reconstruct_wallet_balance(wallet, transactions, cutoff, diagnostics)
        if balance != _ZERO:
            balances[wallet.id] = balance
    return balances


def _balances_by_name(
    kind: WalletKind,
    wallets: list[Wallet],
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    wallet_filter: WalletFilter,
    diagnostics: Optional[AnomalyLog],
) -> dict[str, Decimal]:
    of_kind = [w for w in wallets if w.kind is kind]
    by_id = reconstruct_wallet_balances(
        wallets, transactions, cutoff, wallet_filter, diagnostics
    )

    result = {}
    for wallet in of_kind:
        if wallet.id not in by_id:
            continue
        label = wallet.name or wallet.id
        if label in result:
            label = f"{label} ({wallet.id})"
        result[label] = by_id[wallet.id]
    return result


def reconstruct_physical_wallet_balances(
    wallets: list[Wallet],
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    wallet_filter: WalletFilter = AllWallets(),
    diagnostics: Optional[AnomalyLog] = None,
) -> dict[str, Decimal]:
    """Physical wallet name -> balance as of `cutoff`."""
    return _balances_by_name(
        WalletKind.PHYSICAL, wallets, transactions, cutoff, wallet_filter, diagnostics
    )


def reconstruct_logical_wallet_balances(
    wallets: list[Wallet],
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    wallet_filter: WalletFilter = AllWallets(),
    diagnostics: Optional[AnomalyLog] = None,
) -> dict[str, Decimal]:
    """Logical wallet name -> balance as of `cutoff`. Overspent budgets stay negative."""
    return _balances_by_name(
        WalletKind.LOGICAL, wallets, transactions, cutoff, wallet_filter, diagnostics
    )


def reconstruct_portfolio_composition(
    wallets: list[Wallet],
    transactions: list[Transaction],
    cutoff: Optional[datetime],
    wallet_filter: WalletFilter = AllWallets(),
    diagnostics: Optional[AnomalyLog] = None,
) -> dict[PhysicalForm, Decimal]:
    """Physical balances as of `cutoff` summed per asset category."""
    balances = reconstruct_wallet_balances(
        wallets, transactions, cutoff, wallet_filter, diagnostics
    )

    composition: dict[PhysicalForm, Decimal] = defaultdict(lambda: _ZERO)
    for wallet in wallets:
        if wallet.is_physical and wallet.id in balances:
            composition[wallet.physical_form] += balances[wallet.id]

    return {form: total for form, total in composition.items() if total != _ZERO}


# =============================================================================
# TAG TOTALS (period-local)
# =============================================================================

def reconstruct_tag_totals(
    transactions: list[Transaction],
    kind: TransactionKind,
    period: DateFilterPeriod,
    wallet_filter: WalletFilter = AllWallets(),
    diagnostics: Optional[AnomalyLog] = None,
) -> dict[str, Decimal]:
    """
    Tag -> total amount of `kind` transactions dated INSIDE the window.

    Transactions before the window never count here, unlike the balance
    functions above. A transaction with several tags adds its full amount
    to each of them.
    """
    if kind not in (TransactionKind.INCOME, TransactionKind.EXPENSE):
        raise ValueError(f"Tag totals are only defined for Income and Expense, not {kind.value}")

    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for transaction in filter_transactions(transactions, wallet_filter):
        if transaction.kind is not kind:
            continue
        moment = effective_date(transaction)
        if moment is None:
            if diagnostics is not None:
                diagnostics.report(missing_date_anomaly(transaction))
            continue
        if not period.contains(moment):
            continue
        for tag in transaction.tags:
            totals[tag] += transaction.amount

    logger.debug(
        "tag_totals_computed",
        kind=kind.value,
        period=period.display_text(),
        tags=len(totals),
    )
    return dict(totals)
