"""
Date resolution shared by the detector and the reconstructor.

A transaction's user-facing date is optional; when it is absent the record
creation timestamp stands in. A stored date that could not be read leaves
the transaction undated; creation time does not stand in for it. That rule
lives in exactly one place, `effective_date`, so the two algorithms can
never disagree about when a transaction happened.
"""

from datetime import datetime
from typing import Iterable, Optional

from profiteer.audit.diagnostics import AnomalyLog
from profiteer.models.ledger import Transaction
from profiteer.models.report import AnomalyType, DataAnomaly


def effective_date(transaction: Transaction) -> Optional[datetime]:
    """
    The date a transaction counts at: transaction_date, else created_at.

    None for undated transactions, including ones whose stored date was
    unreadable.
    """
    if transaction.unreadable_date is not None:
        return None
    if transaction.transaction_date is not None:
        return transaction.transaction_date
    return transaction.created_at


def is_on_or_before(moment: Optional[datetime], cutoff: Optional[datetime]) -> bool:
    """Inclusive cutoff test. No cutoff admits any dated moment."""
    if moment is None:
        return False
    return cutoff is None or moment <= cutoff


def dated_transactions(
    transactions: Iterable[Transaction],
    diagnostics: Optional[AnomalyLog] = None,
) -> list[Transaction]:
    """
    Keep transactions that have an effective date, in input order.

    Undated ones are reported as excluded MISSING_DATE anomalies.
    """
    dated = []
    for transaction in transactions:
        if effective_date(transaction) is None:
            if diagnostics is not None:
                diagnostics.report(missing_date_anomaly(transaction))
            continue
        dated.append(transaction)
    return dated


def missing_date_anomaly(transaction: Transaction) -> DataAnomaly:
    label = transaction.title or transaction.id
    if transaction.unreadable_date is not None:
        return DataAnomaly(
            anomaly_type=AnomalyType.MISSING_DATE,
            message=f"Transaction '{label}' has an unreadable date '{transaction.unreadable_date}'",
            transaction_id=transaction.id,
            excluded=True,
            details={"raw_date": transaction.unreadable_date},
        )
    return DataAnomaly(
        anomaly_type=AnomalyType.MISSING_DATE,
        message=f"Transaction '{label}' has no date",
        transaction_id=transaction.id,
        excluded=True,
    )
