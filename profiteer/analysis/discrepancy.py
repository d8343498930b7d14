"""
Balance Discrepancy Detector

Physical wallets hold the money; Logical wallets say what it is for. Both
kinds must add up to the same total. When they don't, the transaction
history is replayed in date order to find the transaction that opened the
gap.

DESIGN DECISION: The replay reports the onset of the divergence that is
STILL OPEN when the replay ends. A gap that opens and later closes again
(for example an expense posted to one side and fixed by the next entry)
is transient and is not blamed. If the wallets already disagree before
any transaction and never reconcile, the first replayed transaction is
the one after which the gap is first observed and persists, so it is the
answer. Only an empty history yields None for a diverged snapshot;
`analyze` still reports the amount so the caller can tell that apart
from "balanced".

All functions here are pure. Data problems go to the optional AnomalyLog.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from profiteer.analysis.dates import dated_transactions, effective_date
from profiteer.analysis.filters import known_wallet_transactions
from profiteer.audit.diagnostics import AnomalyLog
from profiteer.models.ledger import Transaction, TransactionKind, Wallet, WalletKind
from profiteer.models.report import (
    AnomalyType,
    DataAnomaly,
    DiscrepancyReport,
    TransactionWithBalances,
)

logger = structlog.get_logger(__name__)

# Absorbs rounding noise only; not a currency minor unit.
DISCREPANCY_TOLERANCE = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def _as_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 100.005 as 100.005 instead of its binary expansion
    return Decimal(str(value))


# =============================================================================
# TOTALS
# =============================================================================

def has_discrepancy(physical_total: Amount, logical_total: Amount) -> bool:
    """True when the two totals differ by more than DISCREPANCY_TOLERANCE."""
    difference = _as_decimal(physical_total) - _as_decimal(logical_total)
    return abs(difference) > DISCREPANCY_TOLERANCE


def get_discrepancy_amount(physical_total: Amount, logical_total: Amount) -> Decimal:
    """Signed physical - logical. Positive means Physical exceeds Logical."""
    return _as_decimal(physical_total) - _as_decimal(logical_total)


def calculate_total_physical_balance(wallets: Iterable[Wallet]) -> Decimal:
    return sum((w.balance for w in wallets if w.is_physical), Decimal("0"))


def calculate_total_logical_balance(wallets: Iterable[Wallet]) -> Decimal:
    return sum((w.balance for w in wallets if w.is_logical), Decimal("0"))


# =============================================================================
# REPLAY
# =============================================================================

def _wallet_deltas(transaction: Transaction) -> list[tuple[str, Decimal]]:
    """Signed effect of a transaction on each wallet it touches."""
    amount = transaction.amount
    if transaction.kind is TransactionKind.INCOME:
        return [(wallet_id, amount) for wallet_id in transaction.affected_wallet_ids]
    if transaction.kind is TransactionKind.EXPENSE:
        return [(wallet_id, -amount) for wallet_id in transaction.affected_wallet_ids]
    return [
        (transaction.source_wallet_id, -amount),
        (transaction.destination_wallet_id, amount),
    ]


class _Replay:
    """
    One chronological pass over a snapshot.

    Holds per-kind running totals seeded from initial balances and records
    the totals after every applied transaction.
    """

    def __init__(
        self,
        wallets: list[Wallet],
        transactions: list[Transaction],
        diagnostics: Optional[AnomalyLog] = None,
    ):
        self._kinds = {w.id: w.kind for w in wallets}
        self._diagnostics = diagnostics

        self.totals = {
            WalletKind.PHYSICAL: sum(
                (w.initial_balance for w in wallets if w.is_physical), Decimal("0")
            ),
            WalletKind.LOGICAL: sum(
                (w.initial_balance for w in wallets if w.is_logical), Decimal("0")
            ),
        }
        self.initially_diverged = self._diverged()
        self.steps: list[TransactionWithBalances] = []
        self.first_discrepancy_id: Optional[str] = None

        usable = known_wallet_transactions(
            dated_transactions(transactions, diagnostics), wallets, diagnostics
        )
        usable_ids = {t.id for t in usable}
        self.skipped_ids = [t.id for t in transactions if t.id not in usable_ids]
        # sorted() is stable: equal dates keep input order
        self.ordered = sorted(usable, key=effective_date)
        self._run()

    def _diverged(self) -> bool:
        return has_discrepancy(
            self.totals[WalletKind.PHYSICAL], self.totals[WalletKind.LOGICAL]
        )

    def _apply(self, transaction: Transaction) -> None:
        if transaction.kind is TransactionKind.TRANSFER:
            source_kind = self._kinds[transaction.source_wallet_id]
            destination_kind = self._kinds[transaction.destination_wallet_id]
            if source_kind is not destination_kind and self._diagnostics is not None:
                self._diagnostics.report(DataAnomaly(
                    anomaly_type=AnomalyType.CROSS_KIND_TRANSFER,
                    message=(
                        f"Transfer '{transaction.title or transaction.id}' moves money "
                        f"from a {source_kind.value} to a {destination_kind.value} wallet"
                    ),
                    transaction_id=transaction.id,
                    details={
                        "source_wallet_id": transaction.source_wallet_id,
                        "destination_wallet_id": transaction.destination_wallet_id,
                    },
                ))
        for wallet_id, delta in _wallet_deltas(transaction):
            self.totals[self._kinds[wallet_id]] += delta

    def _run(self) -> None:
        diverged = self.initially_diverged
        candidate: Optional[str] = None
        for transaction in self.ordered:
            self._apply(transaction)
            now_diverged = self._diverged()
            # a snapshot that starts diverged blames the first replayed transaction
            if now_diverged and (not diverged or candidate is None):
                candidate = transaction.id
            elif not now_diverged:
                candidate = None
            diverged = now_diverged
            self.steps.append(TransactionWithBalances(
                transaction=transaction,
                physical_balance_after=self.totals[WalletKind.PHYSICAL],
                logical_balance_after=self.totals[WalletKind.LOGICAL],
            ))
        self.first_discrepancy_id = candidate if diverged else None


def find_first_discrepancy_transaction(
    wallets: list[Wallet],
    transactions: list[Transaction],
    diagnostics: Optional[AnomalyLog] = None,
) -> Optional[str]:
    """
    Id of the transaction that opened the Physical/Logical gap still open
    at the end of history, or None.

    Undated transactions and transactions that reference wallets missing
    from the snapshot are left out of the replay and reported.
    """
    return _Replay(wallets, transactions, diagnostics).first_discrepancy_id


def calculate_running_balances(
    wallets: list[Wallet],
    transactions: list[Transaction],
    diagnostics: Optional[AnomalyLog] = None,
) -> list[TransactionWithBalances]:
    """
    Physical and Logical totals after each replayed transaction, newest first.

    The row for the transaction `find_first_discrepancy_transaction` would
    return is flagged with is_first_discrepancy.
    """
    replay = _Replay(wallets, transactions, diagnostics)
    rows = [
        step.model_copy(update={
            "is_first_discrepancy": step.transaction.id == replay.first_discrepancy_id,
        })
        for step in replay.steps
    ]
    rows.reverse()
    return rows


def analyze(
    wallets: list[Wallet],
    transactions: list[Transaction],
    diagnostics: Optional[AnomalyLog] = None,
) -> DiscrepancyReport:
    """Full check: live totals, replayed totals and the first offending transaction."""
    sink = diagnostics if diagnostics is not None else AnomalyLog()

    physical_total = calculate_total_physical_balance(wallets)
    logical_total = calculate_total_logical_balance(wallets)
    discrepancy = has_discrepancy(physical_total, logical_total)

    replay = _Replay(wallets, transactions, sink)

    report = DiscrepancyReport(
        physical_total=physical_total,
        logical_total=logical_total,
        has_discrepancy=discrepancy,
        discrepancy_amount=(
            get_discrepancy_amount(physical_total, logical_total) if discrepancy else None
        ),
        replayed_physical_total=replay.totals[WalletKind.PHYSICAL],
        replayed_logical_total=replay.totals[WalletKind.LOGICAL],
        first_discrepancy_transaction_id=replay.first_discrepancy_id,
        transactions_replayed=len(replay.ordered),
        skipped_transaction_ids=replay.skipped_ids,
        anomalies=sink.anomalies,
    )

    logger.info(
        "discrepancy_check",
        physical_total=str(physical_total),
        logical_total=str(logical_total),
        has_discrepancy=discrepancy,
        first_discrepancy_transaction_id=replay.first_discrepancy_id,
        transactions_replayed=report.transactions_replayed,
        skipped=len(report.skipped_transaction_ids),
    )
    return report
