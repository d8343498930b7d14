"""Wallet filter application and wallet-reference checks."""

from typing import Iterable, Optional

from profiteer.audit.diagnostics import AnomalyLog
from profiteer.models.ledger import Transaction, Wallet
from profiteer.models.period import AllWallets, WalletFilter
from profiteer.models.report import AnomalyType, DataAnomaly


def filter_wallets(
    wallets: Iterable[Wallet],
    wallet_filter: WalletFilter = AllWallets(),
) -> list[Wallet]:
    return [w for w in wallets if wallet_filter.includes(w.id)]


def transaction_matches(
    transaction: Transaction,
    wallet_filter: WalletFilter = AllWallets(),
) -> bool:
    """Does the transaction touch a wallet the filter selects?"""
    if isinstance(wallet_filter, AllWallets):
        return True
    return any(
        wallet_filter.includes(wallet_id)
        for wallet_id in transaction.referenced_wallet_ids
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    wallet_filter: WalletFilter = AllWallets(),
) -> list[Transaction]:
    return [t for t in transactions if transaction_matches(t, wallet_filter)]


def known_wallet_transactions(
    transactions: Iterable[Transaction],
    wallets: Iterable[Wallet],
    diagnostics: Optional[AnomalyLog] = None,
) -> list[Transaction]:
    """
    Drop transactions that reference a wallet missing from the snapshot.

    Each dropped transaction is reported once per unknown wallet id.
    """
    known_ids = {w.id for w in wallets}
    kept = []
    for transaction in transactions:
        unknown = [
            wallet_id for wallet_id in transaction.referenced_wallet_ids
            if wallet_id not in known_ids
        ]
        if not unknown:
            kept.append(transaction)
            continue
        if diagnostics is not None:
            for wallet_id in unknown:
                diagnostics.report(DataAnomaly(
                    anomaly_type=AnomalyType.UNKNOWN_WALLET,
                    message=(
                        f"Transaction '{transaction.title or transaction.id}' "
                        f"references unknown wallet {wallet_id}"
                    ),
                    transaction_id=transaction.id,
                    wallet_id=wallet_id,
                    excluded=True,
                ))
    return kept
